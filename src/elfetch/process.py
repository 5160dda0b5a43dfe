"""External command execution.

SubprocessExecutor is the default ProcessExecutor: a blocking run() for the
git steps inside a worker, and run_async() for the orchestrator, which must
keep scheduling while workers run.
"""

import asyncio
import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined diagnostic output (stdout then stderr)."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class SubprocessExecutor:
    """Run commands with the subprocess and asyncio subprocess APIs."""

    def run(self, args: Sequence[str], cwd: Path | None = None) -> ProcessResult:
        logger.debug(f"Running {' '.join(args)} in {cwd or '.'}")
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return ProcessResult(returncode=127, stderr=str(e))
        return ProcessResult(returncode=completed.returncode, stdout=completed.stdout, stderr=completed.stderr)

    async def run_async(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        input: bytes | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        logger.debug(f"Spawning {' '.join(args)} in {cwd or '.'}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd else None,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return ProcessResult(returncode=127, stderr=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(input), timeout)
        except TimeoutError:
            process.kill()
            await process.wait()
            raise

        return ProcessResult(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

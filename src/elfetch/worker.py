"""Out-of-process repository initialization.

Each package is cloned and checked out by a separate Python interpreter
running this module, so slow git operations never block the orchestrator:

    python -m elfetch.worker STORE_DIR < recipe.json

The worker prints one JSON object on stdout: {"package", "path", "commit"}
on success, or {"error", "message"} with exit status 1 on failure.
"""

import json
import logging
import shutil
import sys
from pathlib import Path

from pydantic import ValidationError

from . import exceptions
from .addressing import repository_path
from .exceptions import ElfetchError
from .exceptions import WorkerError
from .process import SubprocessExecutor
from .protocols import ProcessExecutor
from .repository import RepositoryManager
from .schema import Recipe

logger = logging.getLogger(__name__)


def _error_from_payload(recipe: Recipe, payload: dict, output: str) -> ElfetchError:
    """Rebuild the worker's exception in the parent process."""
    error_class = getattr(exceptions, str(payload.get("error")), None)
    message = payload.get("message") or output
    context = {"recipe": recipe.model_dump(), "output": output}
    if isinstance(error_class, type) and issubclass(error_class, ElfetchError):
        return error_class(message, context=context)
    return WorkerError(f"Worker failed for {recipe.package}: {message}", context=context)


def _parse_payload(stdout: str) -> dict:
    lines = [line for line in stdout.splitlines() if line.strip()]
    if not lines:
        return {}
    try:
        payload = json.loads(lines[-1])
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


class SubprocessWorker:
    """
    Run initialize_repository() for a recipe in a child interpreter.

    Timeout policy: when timeout expires the child is killed, a repository
    directory that did not exist before this run is removed, and the
    package fails with WorkerError.
    """

    def __init__(
        self,
        store_dir: Path,
        executor: ProcessExecutor | None = None,
        timeout: float | None = None,
        python: str = sys.executable,
    ):
        self.store_dir = store_dir
        self.executor = executor or SubprocessExecutor()
        self.timeout = timeout
        self.python = python

    async def run(self, recipe: Recipe) -> str | None:
        """
        Initialize the recipe's repository in a worker process.

        Returns:
            Checked-out commit SHA, or None if the worker could not tell

        Raises:
            ElfetchError: The worker's own error (e.g. CheckoutFailedError)
            WorkerError: If the worker crashed or timed out
        """
        path = repository_path(recipe, self.store_dir)
        existed = path.exists()
        args = [self.python, "-m", "elfetch.worker", str(self.store_dir)]

        try:
            result = await self.executor.run_async(
                args,
                input=recipe.model_dump_json().encode(),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            if not existed and path.exists():
                logger.warning(f"Removing partial repository {path}")
                shutil.rmtree(path, ignore_errors=True)
            raise WorkerError(
                f"Worker for {recipe.package} timed out after {self.timeout}s",
                context={"recipe": recipe.model_dump(), "path": str(path)},
            ) from e

        payload = _parse_payload(result.stdout)
        if not result.success:
            raise _error_from_payload(recipe, payload, result.output)

        return payload.get("commit")


def main(argv: list[str] | None = None) -> int:
    """Worker entry point: initialize one repository read from stdin."""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("usage: python -m elfetch.worker STORE_DIR < recipe.json", file=sys.stderr)
        return 2

    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    try:
        recipe = Recipe.model_validate_json(sys.stdin.read())
    except ValidationError as e:
        print(json.dumps({"error": "MalformedOrderError", "message": f"Invalid recipe on stdin: {e}"}))
        return 1

    manager = RepositoryManager(Path(argv[0]))
    try:
        path = manager.initialize_repository(recipe)
    except ElfetchError as e:
        logger.error(e.message)
        print(json.dumps({"error": type(e).__name__, "message": e.message}))
        return 1

    print(json.dumps({"package": recipe.package, "path": str(path), "commit": manager.current_commit(recipe)}))
    return 0


if __name__ == "__main__":
    sys.exit(main())

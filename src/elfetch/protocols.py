"""Protocols for the collaborators the core is built around.

Applications provide menus, hooks, process executors and workers. The
library only depends on these interfaces.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Any
from typing import Protocol
from typing import runtime_checkable

from .process import ProcessResult
from .schema import MenuItem
from .schema import Recipe


@runtime_checkable
class MenuProvider(Protocol):
    """Catalog of package candidates.

    Example implementations:
    - StaticMenu: in-memory mapping
    - TomlMenu: catalog file on disk
    """

    def index(self) -> dict[str, MenuItem]:
        """Return every candidate this menu knows, keyed by package identifier."""
        ...

    def update(self) -> None:
        """Refresh the menu's cached candidates."""
        ...


@runtime_checkable
class ModifierHook(Protocol):
    """Order or recipe modification hook.

    Hooks run in order; the first one returning a property set wins.
    """

    def attempt(self, properties: dict[str, Any]) -> dict[str, Any] | None:
        """Return properties to merge, or None to defer to the next hook."""
        ...


class CandidateChooser(Protocol):
    """Picks a package for a prompt order (interactive UI lives in the app)."""

    def __call__(self, candidates: list[str]) -> str | None: ...


class ProcessExecutor(Protocol):
    """Runs external commands (git, pre-build steps)."""

    def run(self, args: Sequence[str], cwd: Path | None = None) -> ProcessResult:
        """Run a command to completion.

        Args:
            args: Command and arguments
            cwd: Working directory (None for the current one)

        Returns:
            ProcessResult with success flag and captured output
        """
        ...

    async def run_async(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        input: bytes | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run a command without blocking the event loop.

        Raises:
            TimeoutError: If timeout expires (the process is killed first)
        """
        ...


class Worker(Protocol):
    """Runs repository initialization for one recipe, isolated from the caller."""

    async def run(self, recipe: Recipe) -> str | None:
        """Initialize the recipe's repository.

        Returns:
            Checked-out commit SHA, or None if unknown

        Raises:
            ElfetchError: If initialization fails
        """
        ...

"""Install orchestration - dedup, dispatch, and dependency expansion.

Per package: idle -> dispatched -> succeeded | failed.

submit() resolves an order, and unless the package is already dispatched,
hands the recipe to a worker as an asyncio task. When the worker finishes,
the package leaves the dispatched set; on success the continuation runs
(by default: scan dependencies and submit each one). The install graph is
therefore walked in completion order, not planned up front.

A package counts as installed only once its continuation has also
succeeded, so installed and failures never share a key: a fetched package
whose Emacs requirement is unmet ends up in failures alone.

All bookkeeping happens on the event loop thread between awaits. The
check-and-insert in submit() contains no await, so it cannot interleave
with another submit() or a completion.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any

from packaging.version import InvalidVersion
from packaging.version import Version

from .addressing import repository_path
from .dependencies import DependencyScanner
from .exceptions import DependencyParseError
from .exceptions import ElfetchError
from .exceptions import HostVersionTooLowError
from .lock import PackageLock
from .protocols import Worker
from .resolver import RecipeResolver
from .schema import Dependency
from .schema import Recipe

logger = logging.getLogger(__name__)

HOST_PACKAGE = "emacs"

Continuation = Callable[[Recipe], Awaitable[None] | None]


class Orchestrator:
    """
    Schedule package installs with at most one in-flight fetch per package.

    The dispatched set is owned by this instance; nothing else mutates it.
    """

    def __init__(
        self,
        resolver: RecipeResolver,
        worker: Worker,
        scanner: DependencyScanner,
        host_version: str | None = None,
        ignored_dependencies: Iterable[str] = (),
        lock: PackageLock | None = None,
    ):
        """Initialize orchestrator with app-provided collaborators.

        Args:
            resolver: Turns orders into recipes
            worker: Initializes repositories out of process
            scanner: Reads declared dependencies after a fetch
            host_version: Emacs version that "emacs" dependencies are checked against
                (None skips the check)
            ignored_dependencies: Package identifiers never queued as dependencies
            lock: Optional lock file updated after each successful install
        """
        self.resolver = resolver
        self.worker = worker
        self.scanner = scanner
        self.host_version = host_version
        self.ignored_dependencies = frozenset(ignored_dependencies)
        self.lock = lock

        self.installed: dict[str, Recipe] = {}
        self.failures: dict[str, Exception] = {}
        self._dispatched: set[str] = set()
        self._seen: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def dispatched(self) -> frozenset[str]:
        """Package identifiers currently being fetched."""
        return frozenset(self._dispatched)

    def submit(self, order: Any, on_complete: Continuation | None = None) -> asyncio.Task | None:
        """
        Resolve an order and dispatch its package unless already in flight.

        Must be called from a running event loop.

        Args:
            order: None, a package identifier, or an inline specification
            on_complete: Continuation run after a successful fetch
                (defaults to queue_dependencies)

        Returns:
            The dispatched task, or None if the package was already in flight

        Raises:
            UnknownPackageError, NoRecipeError, MalformedOrderError: If the
                order cannot be resolved (nothing is dispatched)
        """
        recipe = self.resolver.resolve(order)
        package = recipe.package
        self._seen.add(package)

        if package in self._dispatched:
            logger.debug(f"{package} already dispatched; not fetching again")
            return None

        self._dispatched.add(package)
        logger.info(f"Dispatching {package}")
        task = asyncio.get_running_loop().create_task(
            self._run(recipe, on_complete or self.queue_dependencies),
            name=f"elfetch:{package}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, recipe: Recipe, on_complete: Continuation) -> None:
        package = recipe.package
        try:
            commit = await self.worker.run(recipe)
        except ElfetchError as e:
            logger.error(f"Failed to install {package}: {e.message}")
            self._fail(package, e)
            return
        except Exception as e:
            logger.exception(f"Worker crashed installing {package}: {e}")
            self._fail(package, e)
            return
        finally:
            self._dispatched.discard(package)

        logger.info(f"Fetched {package}" + (f" at {commit[:12]}" if commit else ""))
        try:
            result = on_complete(recipe)
            if inspect.isawaitable(result):
                await result
        except ElfetchError as e:
            logger.error(f"Failed to process dependencies of {package}: {e.message}")
            self._fail(package, e)
            return
        except Exception as e:
            logger.exception(f"Continuation failed for {package}: {e}")
            self._fail(package, e)
            return

        self.failures.pop(package, None)
        self.installed[package] = recipe
        if self.lock is not None:
            self.lock.record(recipe, repository_path(recipe, self.scanner.store_dir), commit)

    def _fail(self, package: str, error: Exception) -> None:
        self.installed.pop(package, None)
        self.failures[package] = error

    def check_host_version(self, recipe: Recipe, dependency: Dependency) -> None:
        """
        Check an "emacs" dependency against the configured host version.

        Raises:
            HostVersionTooLowError: If the package needs a newer Emacs
            DependencyParseError: If either version cannot be parsed
        """
        if self.host_version is None:
            logger.debug(f"No host version configured; not checking {recipe.package}'s {dependency!r}")
            return

        try:
            required = Version(dependency.version)
            running = Version(self.host_version)
        except InvalidVersion as e:
            raise DependencyParseError(
                f"Cannot compare Emacs version {dependency.version!r} required by {recipe.package}: {e}",
                context={"recipe": recipe.model_dump(), "dependency": dependency.model_dump()},
            ) from e

        if running < required:
            raise HostVersionTooLowError(
                f"{recipe.package} requires Emacs {dependency.version}, running {self.host_version}",
                context={"recipe": recipe.model_dump(), "dependency": dependency.model_dump()},
            )

    def queue_dependencies(self, recipe: Recipe) -> None:
        """
        Default continuation: submit every dependency of a fetched package.

        Host dependencies are checked first; a failed check stops this
        package's branch before anything is queued. Ignored and already
        seen packages are skipped. A dependency that cannot be resolved is
        recorded in failures without affecting its siblings.
        """
        if recipe.nonrecursive:
            logger.debug(f"{recipe.package} is nonrecursive; not queueing dependencies")
            return

        dependencies = self.scanner.dependencies(recipe)
        for dependency in dependencies:
            if dependency.package == HOST_PACKAGE:
                self.check_host_version(recipe, dependency)

        for dependency in dependencies:
            package = dependency.package
            if package == HOST_PACKAGE or package in self.ignored_dependencies:
                continue
            if package in self._seen:
                logger.debug(f"{package} already seen; skipping dependency of {recipe.package}")
                continue

            try:
                self.submit(package)
            except ElfetchError as e:
                logger.error(f"Cannot queue {package} (needed by {recipe.package}): {e.message}")
                self._seen.add(package)
                self.failures[package] = e

    async def wait(self) -> None:
        """Wait until every dispatched task, including queued dependencies, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

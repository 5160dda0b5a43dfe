"""Package installation entry points.

Wires settings into the resolver, worker, scanner and orchestrator, so an
app only has to supply policy (hooks, extra menus, a chooser).
"""

import logging
from collections.abc import Iterable
from collections.abc import Sequence
from typing import Any

from .config import ElfetchSettings
from .dependencies import DependencyScanner
from .exceptions import ElfetchError
from .hooks import OrderDefaults
from .lock import PackageLock
from .orchestrator import Orchestrator
from .protocols import CandidateChooser
from .protocols import MenuProvider
from .protocols import ModifierHook
from .protocols import Worker
from .providers import ProviderRegistry
from .providers import TomlMenu
from .repository import RepositoryManager
from .resolver import RecipeResolver
from .schema import Recipe
from .worker import SubprocessWorker

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: ElfetchSettings,
    menus: Sequence[MenuProvider] | None = None,
    order_hooks: Sequence[ModifierHook] | None = None,
    recipe_hooks: Sequence[ModifierHook] | None = None,
    chooser: CandidateChooser | None = None,
    worker: Worker | None = None,
) -> Orchestrator:
    """
    Build an orchestrator from settings plus app policy.

    Args:
        settings: Store location, host version, catalog files, timeouts
        menus: Menus queried before the catalog files named in settings
        order_hooks: Order hooks (defaults to [OrderDefaults()])
        recipe_hooks: Recipe hooks
        chooser: Picks a package for prompt orders
        worker: Worker override (defaults to SubprocessWorker)

    Returns:
        Orchestrator ready for submit()
    """
    store_dir = settings.resolved_store_dir
    providers = list(menus or []) + [TomlMenu(path.expanduser()) for path in settings.menus]

    resolver = RecipeResolver(
        registry=ProviderRegistry(providers),
        order_hooks=[OrderDefaults()] if order_hooks is None else order_hooks,
        recipe_hooks=recipe_hooks,
        chooser=chooser,
    )
    return Orchestrator(
        resolver=resolver,
        worker=worker or SubprocessWorker(store_dir, timeout=settings.worker_timeout),
        scanner=DependencyScanner(store_dir),
        host_version=settings.host_version,
        ignored_dependencies=settings.ignored_dependencies,
        lock=PackageLock(settings.resolved_lock_path),
    )


async def install_packages(orders: Iterable[Any], settings: ElfetchSettings, **policy: Any) -> Orchestrator:
    """
    Install packages and, recursively, their dependencies.

    Orders that cannot be resolved are recorded in the orchestrator's
    failures; the remaining orders still install.

    Args:
        orders: Package identifiers or inline specifications
        settings: Settings to build the orchestrator from
        **policy: Passed to build_orchestrator (menus, hooks, chooser, worker)

    Returns:
        The orchestrator, for inspecting installed and failures

    Example:
        >>> settings = ElfetchSettings.from_toml(Path("~/.emacs.d/elfetch.toml").expanduser())
        >>> orchestrator = await install_packages(["magit", ("dash", ":ref", "2.19.1")], settings)
        >>> print(sorted(orchestrator.installed), orchestrator.failures)
    """
    orchestrator = build_orchestrator(settings, **policy)
    for order in orders:
        try:
            orchestrator.submit(order)
        except ElfetchError as e:
            logger.error(f"Cannot install {order!r}: {e.message}")
            orchestrator.failures[str(order)] = e

    await orchestrator.wait()
    logger.info(f"Installed {len(orchestrator.installed)} packages, {len(orchestrator.failures)} failed")
    return orchestrator


def uninstall_package(recipe: Recipe, settings: ElfetchSettings, lock: PackageLock | None = None) -> None:
    """
    Remove a package's repository and its lock entry.

    Args:
        recipe: Resolved recipe of the package to remove
        settings: Settings naming the package store
        lock: Lock file to update (defaults to the one named in settings)

    Raises:
        RepositoryNotFoundError: If the repository is not on disk
    """
    RepositoryManager(settings.resolved_store_dir).remove_repository(recipe)

    lock = lock or PackageLock(settings.resolved_lock_path)
    lock.remove_entry(recipe.package)
    logger.info(f"Uninstalled {recipe.package}")

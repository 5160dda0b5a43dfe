"""Menu providers and the ordered provider registry.

A menu is a catalog of package candidates. The registry queries its menus
in order; for any package identifier, the first menu that knows it wins.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .protocols import MenuProvider
from .schema import MenuItem
from .schema import normalize_properties

logger = logging.getLogger(__name__)


class StaticMenu:
    """In-memory menu built from a mapping of package identifier to recipe."""

    def __init__(self, name: str, recipes: dict[str, dict[str, Any]]):
        self.name = name
        self._recipes = recipes

    def index(self) -> dict[str, MenuItem]:
        return {
            package: MenuItem(source=self.name, recipe={"package": package, **normalize_properties(recipe)})
            for package, recipe in self._recipes.items()
        }

    def update(self) -> None:
        """Static menus have nothing to refresh."""


class TomlMenu:
    """
    Menu read from a TOML catalog file (cached until update()).

    Format:
        [packages.magit]
        repo = "magit/magit"
        host = "github"

        [packages.dash]
        repo = "magnars/dash.el"
        host = "github"
        local-repo = "dash"
    """

    def __init__(self, path: Path, name: str | None = None):
        self.path = path
        self.name = name or path.stem
        self._cache: dict[str, MenuItem] | None = None

    def _load(self) -> dict[str, MenuItem]:
        if not self.path.exists():
            logger.warning(f"Menu file not found: {self.path}")
            return {}

        try:
            with open(self.path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid menu file {self.path}: {e}", context={"path": str(self.path)}) from e

        packages = data.get("packages", {})
        if not isinstance(packages, dict):
            raise ConfigError(f"[packages] in {self.path} must be a table", context={"path": str(self.path)})

        items = {}
        for package, recipe in packages.items():
            items[package] = MenuItem(source=self.name, recipe={"package": package, **normalize_properties(recipe)})

        logger.debug(f"Loaded {len(items)} candidates from {self.path}")
        return items

    def index(self) -> dict[str, MenuItem]:
        if self._cache is None:
            self._cache = self._load()
        return self._cache

    def update(self) -> None:
        self._cache = self._load()


class ProviderRegistry:
    """
    Ordered list of menus (with injected providers).

    Order is policy: apps put the menus they trust most first.
    """

    def __init__(self, providers: list[MenuProvider] | None = None):
        self.providers = list(providers or [])

    def candidates(self) -> dict[str, MenuItem]:
        """
        Union of every menu's index, sorted by package identifier.

        Returns:
            Mapping of package identifier to candidate; on identifier clashes
            the earlier menu wins
        """
        combined: dict[str, MenuItem] = {}
        for provider in self.providers:
            for package, item in provider.index().items():
                combined.setdefault(package, item)
        return dict(sorted(combined.items()))

    def lookup(self, package: str) -> MenuItem | None:
        """Return the first candidate for package, or None if no menu knows it."""
        for provider in self.providers:
            item = provider.index().get(package)
            if item is not None:
                logger.debug(f"Found '{package}' in menu {item.source}")
                return item
        return None

    def update(self) -> None:
        """Refresh every menu."""
        for provider in self.providers:
            logger.info(f"Updating menu {getattr(provider, 'name', provider)}")
            provider.update()

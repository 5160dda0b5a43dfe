"""Settings - where packages live and how installs behave.

Settings cover the persisted parts of configuration. Hooks, menus beyond
catalog files, and choosers are Python objects the app injects directly.
"""

import tomllib
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from .exceptions import ConfigError

DEFAULT_STORE_DIR = Path("~/.local/share/elfetch/repos")


class ElfetchSettings(BaseModel):
    """
    Package fetching settings.

    Loaded from an [elfetch] (or [tool.elfetch]) table:

        [elfetch]
        store-dir = "~/.emacs.d/elfetch/repos"
        host-version = "29.4"
        ignored-dependencies = ["cl-lib", "seq"]
        menus = ["~/.emacs.d/elfetch/menu.toml"]
        worker-timeout = 600
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    store_dir: Path = Field(default=DEFAULT_STORE_DIR, alias="store-dir")
    lock_path: Path | None = Field(default=None, alias="lock-path")
    host_version: str | None = Field(default=None, alias="host-version")
    ignored_dependencies: frozenset[str] = Field(default_factory=frozenset, alias="ignored-dependencies")
    menus: list[Path] = Field(default_factory=list)
    worker_timeout: float | None = Field(default=None, alias="worker-timeout", gt=0)

    @property
    def resolved_store_dir(self) -> Path:
        return self.store_dir.expanduser()

    @property
    def resolved_lock_path(self) -> Path:
        """Lock file path (defaults to elfetch.lock next to the store)."""
        if self.lock_path is not None:
            return self.lock_path.expanduser()
        return self.resolved_store_dir.parent / "elfetch.lock"

    @classmethod
    def from_toml(cls, path: Path) -> "ElfetchSettings":
        """
        Load settings from a TOML file.

        Args:
            path: Settings file (a dedicated file or a pyproject.toml)

        Returns:
            ElfetchSettings (defaults for anything not set)

        Raises:
            ConfigError: If the file is missing, not valid TOML, or has invalid values
        """
        if not path.exists():
            raise ConfigError(f"Settings file not found: {path}", context={"path": str(path)})

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}", context={"path": str(path)}) from e

        table = data.get("elfetch") or data.get("tool", {}).get("elfetch", {})
        if not isinstance(table, dict):
            raise ConfigError(f"[elfetch] in {path} must be a table", context={"path": str(path)})

        try:
            return cls.model_validate(table)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings in {path}: {e}", context={"path": str(path)}) from e

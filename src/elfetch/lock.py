"""Package lock file.

Records every installed package with the remote it came from, the checkout
the recipe asked for (ref, tag or branch) and the commit actually checked
out, so an install can be audited or pinned again. The lock path is
injected by the app.
"""

import json
import logging
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import fields
from datetime import UTC
from datetime import datetime
from pathlib import Path

from .addressing import repository_uri
from .schema import Recipe

logger = logging.getLogger(__name__)


@dataclass
class PackageLockEntry:
    """One installed package."""

    package: str
    source: str
    commit: str | None
    path: str
    installed_at: str
    ref: str | None = None
    tag: str | None = None
    branch: str | None = None

    @property
    def requested(self) -> str | None:
        """Checkout the recipe asked for, ref first (same precedence as checkout)."""
        return self.ref or self.tag or self.branch

    @property
    def drifted(self) -> bool:
        """True when a pinned ref was requested but a different commit is checked out."""
        if self.ref is None or self.commit is None:
            return False
        return not self.commit.startswith(self.ref)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PackageLockEntry":
        # Entries written by older releases lack the checkout fields
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


class PackageLock:
    """
    Packages lock file manager (with injected lock path).

    Lock format (JSON):
    {
      "version": "1.0",
      "packages": {
        "magit": {
          "package": "magit",
          "source": "https://github.com/magit/magit.git",
          "commit": "abc123...",
          "path": "~/.local/share/elfetch/repos/magit.magit.github",
          "installed_at": "2026-01-01T12:00:00+00:00",
          "ref": null,
          "tag": "v4.1.0",
          "branch": null
        }
      }
    }

    Saves go through a temporary file so an interrupted write never leaves
    a truncated lock behind.
    """

    VERSION = "1.0"

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._entries: dict[str, PackageLockEntry] = {}
        self._load()

    def _load(self) -> None:
        if not self.lock_path.exists():
            return

        try:
            data = json.loads(self.lock_path.read_text())
            packages = data.get("packages", {})
            self._entries = {name: PackageLockEntry.from_dict(entry) for name, entry in packages.items()}
        except (OSError, json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.error(f"Ignoring unreadable lock file {self.lock_path}: {e}")
            self._entries = {}
            return

        if data.get("version") != self.VERSION:
            logger.warning(f"Lock file version mismatch: expected {self.VERSION}, got {data.get('version')}")
        logger.debug(f"Loaded {len(self._entries)} packages from {self.lock_path}")

    def _save(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": self.VERSION,
            "packages": {name: entry.to_dict() for name, entry in sorted(self._entries.items())},
        }

        partial = self.lock_path.with_name(self.lock_path.name + ".tmp")
        try:
            partial.write_text(json.dumps(data, indent=2) + "\n")
            partial.replace(self.lock_path)
        except OSError as e:
            logger.error(f"Failed to save lock file {self.lock_path}: {e}")

    def record(self, recipe: Recipe, path: Path, commit: str | None) -> PackageLockEntry:
        """
        Add or replace the entry for an installed recipe.

        Args:
            recipe: Recipe the package was installed from
            path: Repository path
            commit: Checked-out commit SHA (None if unknown)

        Returns:
            The new entry
        """
        entry = PackageLockEntry(
            package=recipe.package,
            source=repository_uri(recipe),
            commit=commit,
            path=str(path),
            installed_at=datetime.now(UTC).isoformat(),
            ref=recipe.ref,
            tag=recipe.tag,
            branch=recipe.branch,
        )
        previous = self._entries.get(recipe.package)
        if previous is not None and previous.commit != commit:
            logger.info(f"{recipe.package} moved from {previous.commit} to {commit}")

        self._entries[recipe.package] = entry
        self._save()
        return entry

    def remove_entry(self, package: str) -> None:
        if self._entries.pop(package, None) is not None:
            self._save()
            logger.debug(f"Removed {package} from lock file")

    def get_entry(self, package: str) -> PackageLockEntry | None:
        return self._entries.get(package)

    def list_entries(self) -> list[PackageLockEntry]:
        return list(self._entries.values())

    def is_installed(self, package: str) -> bool:
        return package in self._entries

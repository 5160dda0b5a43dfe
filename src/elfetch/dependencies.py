"""Dependency scanning - read what a package declares it needs.

Two sources, in order of preference:
1. <package>-pkg.el: a (define-package NAME VERSION DOC REQUIREMENTS ...) form
2. The main source file's ";; Package-Requires: ((dep \"1.0\") ...)" header
   (the shorter ";; Requires:" spelling is accepted too)

Both are read with sexpdata; quoted requirement lists are unquoted, and
any other requirement expression is rejected rather than evaluated.
"""

import logging
import re
from pathlib import Path
from typing import Any

import sexpdata

from .addressing import repository_path
from .exceptions import DependencyParseError
from .exceptions import RepositoryNotFoundError
from .schema import Dependency
from .schema import Recipe

logger = logging.getLogger(__name__)

PACKAGE_REQUIRES_RE = re.compile(
    r"^;+[ \t]*(?:Package-)?Requires[ \t]*:[ \t]*(\(.*\))[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

# (define-package NAME VERSION DOC REQUIREMENTS ...)
REQUIREMENTS_POSITION = 4

# What sexpdata raises for malformed input: its own Expect* errors, IndexError
# for a trailing backslash, AssertionError for a header with several forms.
PARSE_ERRORS = (
    OSError,
    UnicodeError,
    ValueError,
    IndexError,
    AssertionError,
    sexpdata.ExpectClosingBracket,
    sexpdata.ExpectNothing,
    sexpdata.ExpectSExp,
)


def _atom(value: Any) -> Any:
    """Plain Python value of a sexpdata atom (Symbol, String, number)."""
    if isinstance(value, sexpdata.Symbol):
        return str(value)
    return value


def _unquote(expression: Any) -> Any:
    """Evaluate a requirement expression: quoted lists and literal nil only."""
    if isinstance(expression, sexpdata.Quoted):
        return expression.x

    if isinstance(expression, list):
        head = _atom(expression[0]) if expression else None
        if head == "quote" and len(expression) == 2:
            return expression[1]
        if not expression:
            return []

    if _atom(expression) == "nil":
        return []

    raise ValueError(f"requirements must be a quoted list, got {sexpdata.dumps(expression)}")


def _to_dependencies(requirements: Any) -> list[Dependency]:
    if not isinstance(requirements, list):
        raise ValueError(f"requirements must be a list, got {requirements!r}")

    dependencies = []
    for entry in requirements:
        if isinstance(entry, list) and entry:
            package = _atom(entry[0])
            version = _atom(entry[1]) if len(entry) > 1 else "0"
        else:
            package, version = _atom(entry), "0"

        if not isinstance(package, str):
            raise ValueError(f"dependency name must be a symbol, got {entry!r}")
        dependencies.append(Dependency(package=package, version=str(version)))
    return dependencies


def parse_package_description(text: str) -> list[Dependency]:
    """
    Parse the requirements of a define-package form.

    Args:
        text: Contents of a <package>-pkg.el file

    Returns:
        Declared dependencies

    Raises:
        ValueError or a sexpdata parse error if the form is malformed
    """
    forms = sexpdata.parse(text)
    if not forms or not isinstance(forms[0], list):
        raise ValueError("no define-package form found")

    form = forms[0]
    if len(form) <= REQUIREMENTS_POSITION:
        return []
    return _to_dependencies(_unquote(form[REQUIREMENTS_POSITION]))


def parse_requires_header(text: str) -> list[Dependency] | None:
    """
    Parse a Package-Requires header line.

    Args:
        text: Contents of a package's main source file

    Returns:
        Declared dependencies, or None if the file has no such header

    Raises:
        ValueError or a sexpdata parse error if the header is malformed
    """
    match = PACKAGE_REQUIRES_RE.search(text)
    if match is None:
        return None
    return _to_dependencies(sexpdata.loads(match.group(1)))


class DependencyScanner:
    """Read declared dependencies from repositories in the package store."""

    def __init__(self, store_dir: Path):
        """Initialize scanner with app-provided store location.

        Args:
            store_dir: Package store root
        """
        self.store_dir = store_dir

    def dependencies(self, recipe: Recipe) -> list[Dependency]:
        """
        List the dependencies declared by the recipe's package.

        Args:
            recipe: Resolved recipe whose repository has been initialized

        Returns:
            Declared dependencies (empty if the package declares none)

        Raises:
            RepositoryNotFoundError: If the repository is not on disk
            DependencyParseError: If the declaration is malformed
        """
        path = repository_path(recipe, self.store_dir)
        if not path.is_dir():
            raise RepositoryNotFoundError(
                f"Repository for {recipe.package} not found at {path}",
                context={"recipe": recipe.model_dump(), "path": str(path)},
            )

        description = path / f"{recipe.package}-pkg.el"
        if description.exists():
            return self._parse(recipe, description, parse_package_description)

        main = path / (recipe.main or f"{recipe.package}.el")
        if not main.exists():
            logger.debug(f"No {description.name} or {main.name} in {path}; assuming no dependencies")
            return []

        dependencies = self._parse(recipe, main, parse_requires_header)
        return dependencies or []

    @staticmethod
    def _parse(recipe: Recipe, source: Path, parser) -> list[Dependency] | None:
        try:
            dependencies = parser(source.read_text(encoding="utf-8", errors="replace"))
        except PARSE_ERRORS as e:
            raise DependencyParseError(
                f"Could not read dependencies of {recipe.package} from {source}: {e}",
                context={"recipe": recipe.model_dump(), "path": str(source)},
            ) from e

        logger.debug(f"{recipe.package} declares {dependencies!r} in {source.name}")
        return dependencies

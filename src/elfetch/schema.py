"""Recipe, dependency and menu item models.

Recipes are immutable once resolved. Property sets are validated against a
fixed keyword set when they are built, so nothing downstream needs to
filter unknown keys.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from .exceptions import MalformedOrderError
from .merge import merge_properties

RECIPE_KEYWORDS = frozenset(
    {
        "package",
        "repo",
        "host",
        "protocol",
        "remotes",
        "ref",
        "branch",
        "tag",
        "depth",
        "inherit",
        "pre_build",
        "fork",
        "nonrecursive",
        "local_repo",
        "main",
    }
)


def normalize_keyword(key: Any) -> str:
    """Normalize a recipe keyword, accepting Lisp-style spellings.

    Args:
        key: Raw keyword (e.g. ":local-repo", "local-repo", "local_repo")

    Returns:
        Canonical keyword name (e.g. "local_repo")

    Raises:
        MalformedOrderError: If key is not a string or not a recognized keyword
    """
    if not isinstance(key, str):
        raise MalformedOrderError(f"Recipe keyword must be a string, got {key!r}", context={"key": key})
    name = key.lstrip(":").replace("-", "_")
    if name not in RECIPE_KEYWORDS:
        raise MalformedOrderError(
            f"Unrecognized recipe keyword {key!r}; expected one of {sorted(RECIPE_KEYWORDS)}",
            context={"key": key},
        )
    return name


def normalize_properties(properties: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of properties with every key normalized."""
    if properties is None:
        return {}
    return {normalize_keyword(key): value for key, value in properties.items()}


class Recipe(BaseModel):
    """
    Fully merged description of how to fetch one package.

    At most one of ref, tag and branch decides the checkout: ref wins over
    the other two, and tag together with branch is rejected at checkout time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    package: str
    repo: str
    host: str | None = None
    protocol: str = "https"
    # "origin", a single remote name, or a list of names / (name, overrides) pairs
    remotes: str | list[Any] = "origin"
    ref: str | None = None
    branch: str | None = None
    tag: str | None = None
    depth: int | None = None
    inherit: bool | None = None
    pre_build: list[str | list[str]] = Field(default_factory=list)
    fork: dict[str, str] | None = None
    nonrecursive: bool = False
    local_repo: str | None = None
    main: str | None = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "Recipe":
        """
        Build a recipe from a merged property set.

        Args:
            properties: Property set with recognized keywords

        Returns:
            Validated Recipe

        Raises:
            MalformedOrderError: If keywords are unknown or values have the wrong type
        """
        normalized = normalize_properties(properties)
        try:
            return cls(**normalized)
        except ValidationError as e:
            raise MalformedOrderError(
                f"Invalid recipe {normalized!r}: {e}",
                context={"recipe": normalized},
            ) from e

    def to_properties(self) -> dict[str, Any]:
        """Property set holding only the fields that were explicitly set."""
        return self.model_dump(exclude_unset=True)

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> "Recipe":
        """Return a new recipe with overrides merged on top."""
        return Recipe.from_properties(merge_properties(self.model_dump(), normalize_properties(overrides)))


class Dependency(BaseModel):
    """Declared dependency: package identifier plus minimum version."""

    model_config = ConfigDict(frozen=True)

    package: str
    version: str = "0"


class MenuItem(BaseModel):
    """Candidate offered by a menu provider."""

    model_config = ConfigDict(frozen=True)

    source: str
    recipe: dict[str, Any] = Field(default_factory=dict)

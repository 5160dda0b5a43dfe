"""Orders - what the user asks for.

An order is one of three explicit cases:
- PromptOrder: nothing given, the package is chosen from the menu
- NamedOrder: a bare package identifier
- InlineOrder: an identifier plus recipe overrides

parse_order() turns loosely shaped input (None, a string, a Lisp-style
property list, a mapping) into one of these cases.
"""

from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import MalformedOrderError
from .schema import normalize_keyword
from .schema import normalize_properties


class PromptOrder(BaseModel):
    """No package named; ask for one."""

    model_config = ConfigDict(frozen=True)


class NamedOrder(BaseModel):
    """Bare package identifier."""

    model_config = ConfigDict(frozen=True)

    package: str


class InlineOrder(BaseModel):
    """Package identifier with explicit recipe overrides."""

    model_config = ConfigDict(frozen=True)

    package: str
    overrides: dict[str, Any] = Field(default_factory=dict)

    @property
    def inherit_disabled(self) -> bool:
        """True only for an explicit inherit=False override."""
        return "inherit" in self.overrides and self.overrides["inherit"] is False


Order = PromptOrder | NamedOrder | InlineOrder


def _overrides_from_plist(items: Sequence[Any], order: Any) -> dict[str, Any]:
    if len(items) % 2 != 0:
        raise MalformedOrderError(
            f"Order overrides must alternate keyword and value, got odd count in {order!r}",
            context={"order": order},
        )
    overrides: dict[str, Any] = {}
    for key, value in zip(items[::2], items[1::2], strict=True):
        overrides[normalize_keyword(key)] = value
    return overrides


def parse_order(value: Any) -> Order:
    """
    Convert a raw order value into an explicit order case.

    Accepted shapes:
    - None -> PromptOrder
    - "pkg" -> NamedOrder
    - ("pkg", ":host", "github", ":repo", "user/pkg") -> InlineOrder
    - (":package", "pkg", ":repo", "user/pkg") -> InlineOrder (identifier from overrides)
    - {"package": "pkg", "repo": "user/pkg"} -> InlineOrder
    - an existing order instance is returned unchanged

    Args:
        value: Raw order

    Returns:
        PromptOrder, NamedOrder or InlineOrder

    Raises:
        MalformedOrderError: If the shape is wrong, overrides have an odd count,
            or a keyword is not recognized
    """
    if isinstance(value, PromptOrder | NamedOrder | InlineOrder):
        return value

    if value is None:
        return PromptOrder()

    if isinstance(value, str):
        if not value:
            raise MalformedOrderError("Order package identifier is empty", context={"order": value})
        return NamedOrder(package=value)

    if isinstance(value, Mapping):
        overrides = normalize_properties(value)
        package = overrides.pop("package", None)
        if not isinstance(package, str) or not package:
            raise MalformedOrderError(f"Order {value!r} has no package identifier", context={"order": value})
        return InlineOrder(package=package, overrides=overrides)

    if isinstance(value, Sequence) and not isinstance(value, bytes):
        items = list(value)
        if not items:
            raise MalformedOrderError("Order is an empty sequence", context={"order": value})

        head = items[0]
        if isinstance(head, str) and not head.startswith(":"):
            overrides = _overrides_from_plist(items[1:], value)
            package = head
        else:
            overrides = _overrides_from_plist(items, value)
            package = overrides.pop("package", None)

        if not isinstance(package, str) or not package:
            raise MalformedOrderError(f"Order {value!r} has no package identifier", context={"order": value})
        return InlineOrder(package=package, overrides=overrides)

    raise MalformedOrderError(
        f"Order must be None, a package name, or an inline specification, got {type(value).__name__}: {value!r}",
        context={"order": value},
    )

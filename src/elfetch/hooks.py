"""Order and recipe modification hooks.

Hooks are tried in order and the first non-None result is used. Results are
merged, not accumulated: a later hook never sees an earlier hook's output.
"""

import logging
from collections.abc import Callable
from collections.abc import Sequence
from typing import Any

from .protocols import ModifierHook
from .schema import normalize_properties

logger = logging.getLogger(__name__)


def first_success(hooks: Sequence[ModifierHook], properties: dict[str, Any]) -> dict[str, Any] | None:
    """
    Run hooks in order, returning the first non-None result.

    Args:
        hooks: Hooks to try
        properties: Input passed to every hook (a copy, hooks cannot mutate it)

    Returns:
        Normalized property set from the first hook that answered, or None
    """
    for hook in hooks:
        result = hook.attempt(dict(properties))
        if result is not None:
            logger.debug(f"Hook {hook!r} returned {result!r}")
            return normalize_properties(result)
    return None


class FunctionHook:
    """Adapt a plain callable to the ModifierHook protocol."""

    def __init__(self, function: Callable[[dict[str, Any]], dict[str, Any] | None]):
        self.function = function

    def attempt(self, properties: dict[str, Any]) -> dict[str, Any] | None:
        return self.function(properties)

    def __repr__(self) -> str:
        return f"FunctionHook({getattr(self.function, '__name__', self.function)!r})"


class OrderDefaults:
    """Default order hook: https, inherit from menus, shallow clones."""

    def __init__(self, protocol: str = "https", inherit: bool = True, depth: int | None = 1):
        self.defaults: dict[str, Any] = {"protocol": protocol, "inherit": inherit}
        if depth is not None:
            self.defaults["depth"] = depth

    def attempt(self, properties: dict[str, Any]) -> dict[str, Any] | None:
        return dict(self.defaults)

    def __repr__(self) -> str:
        return f"OrderDefaults({self.defaults!r})"

"""Recipe resolver - turn orders into recipes.

Menus, hooks and the chooser are app policy, injected at construction.

Resolution merges up to three layers, later layers winning:
1. The menu's recipe for the package (when inherited)
2. The first answer from the order hooks
3. The order's explicit overrides

Recipe hooks then get one last chance to adjust the merged result.
"""

import logging
from collections.abc import Sequence
from typing import Any

from .exceptions import MalformedOrderError
from .exceptions import NoRecipeError
from .exceptions import UnknownPackageError
from .hooks import first_success
from .merge import merge_properties
from .orders import InlineOrder
from .orders import NamedOrder
from .orders import Order
from .orders import PromptOrder
from .orders import parse_order
from .protocols import CandidateChooser
from .protocols import ModifierHook
from .providers import ProviderRegistry
from .schema import Recipe

logger = logging.getLogger(__name__)


class RecipeResolver:
    """
    Resolve orders into recipes (with injected menus and hooks).

    Philosophy:
    - Menus supply defaults, orders supply intent; explicit overrides always win
    - Hooks are first-success, never merge-all
    - No caching; resolution is cheap and local
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        order_hooks: Sequence[ModifierHook] | None = None,
        recipe_hooks: Sequence[ModifierHook] | None = None,
        chooser: CandidateChooser | None = None,
    ):
        """Initialize resolver with app-provided menus and hooks.

        Args:
            registry: Ordered menus to look packages up in
            order_hooks: Hooks run over the order before merging
            recipe_hooks: Hooks run over the merged recipe
            chooser: Picks a package for prompt orders (None disables prompting)

        Example:
            >>> resolver = RecipeResolver(
            ...     registry=ProviderRegistry([TomlMenu(Path("menu.toml"))]),
            ...     order_hooks=[OrderDefaults()],
            ... )
            >>> recipe = resolver.resolve("magit")
        """
        self.registry = registry
        self.order_hooks = list(order_hooks or [])
        self.recipe_hooks = list(recipe_hooks or [])
        self.chooser = chooser

    def resolve(self, order: Any) -> Recipe:
        """
        Resolve an order into a recipe.

        Args:
            order: None, a package identifier, an inline specification,
                or an already parsed order

        Returns:
            Fully merged Recipe

        Raises:
            UnknownPackageError: If a named package is in no menu
            NoRecipeError: If nothing at all describes the package
            MalformedOrderError: If the order or the merged recipe is invalid
        """
        parsed = parse_order(order)

        if isinstance(parsed, PromptOrder):
            parsed = self._prompt(order)

        if isinstance(parsed, NamedOrder):
            layers = self._named_layers(parsed)
        else:
            layers = self._inline_layers(parsed)

        merged = merge_properties(*layers)
        if "package" not in merged:
            merged["package"] = parsed.package

        merged = merge_properties(merged, first_success(self.recipe_hooks, merged))

        try:
            recipe = Recipe.from_properties(merged)
        except MalformedOrderError as e:
            raise MalformedOrderError(
                f"Order {order!r} resolved to an invalid recipe: {e.message}",
                context={"order": order, "recipe": merged},
            ) from e

        logger.debug(f"Resolved {order!r} to {recipe!r}")
        return recipe

    def _prompt(self, order: Any) -> NamedOrder:
        if self.chooser is None:
            raise NoRecipeError("No package given and no chooser configured", context={"order": order})

        choice = self.chooser(list(self.registry.candidates()))
        if not choice:
            raise NoRecipeError("No package chosen", context={"order": order})
        return NamedOrder(package=choice)

    def _named_layers(self, order: NamedOrder) -> list[dict[str, Any] | None]:
        item = self.registry.lookup(order.package)
        if item is None:
            raise UnknownPackageError(
                f"Package '{order.package}' not found in any menu",
                context={"order": order.package},
            )

        modifications = first_success(self.order_hooks, {"package": order.package})
        return [item.recipe, modifications]

    def _inline_layers(self, order: InlineOrder) -> list[dict[str, Any] | None]:
        overrides = order.overrides
        modifications = None
        base = None

        if not order.inherit_disabled:
            modifications = first_success(self.order_hooks, {"package": order.package, **overrides})
            inherit = overrides.get("inherit") or (modifications or {}).get("inherit")
            if inherit:
                item = self.registry.lookup(order.package)
                if item is None:
                    logger.debug(f"No menu recipe to inherit for '{order.package}'")
                else:
                    base = item.recipe

        if base is None and not overrides:
            raise NoRecipeError(
                f"No menu candidate and no overrides for '{order.package}'",
                context={"order": order.model_dump()},
            )

        return [base, modifications, overrides]

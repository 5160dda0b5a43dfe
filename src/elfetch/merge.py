"""Right-biased merging of recipe property sets.

Recipes are composed from several layers (menu defaults, hook results,
explicit order overrides). Later layers win key by key.
"""

from collections.abc import Mapping
from typing import Any


def merge_properties(*property_sets: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Merge property sets, right-most value winning for each key.

    The result contains the union of all keys. Keys keep the position of
    their first appearance; values come from the last set that defines them.
    None entries are skipped.

    Args:
        *property_sets: Mappings to merge, lowest precedence first

    Returns:
        New dict with merged properties (inputs are not modified)

    Example:
        >>> merge_properties({"repo": "a/b", "host": "github"}, None, {"host": "gitlab"})
        {'repo': 'a/b', 'host': 'gitlab'}
    """
    merged: dict[str, Any] = {}
    for properties in property_sets:
        if properties is None:
            continue
        for key, value in properties.items():
            merged[key] = value
    return merged

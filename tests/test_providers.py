"""Tests for menus and the provider registry."""

import pytest
from elfetch import ConfigError
from elfetch import MenuProvider
from elfetch import ProviderRegistry
from elfetch import StaticMenu
from elfetch import TomlMenu


def test_static_menu_index():
    """Test static menus tag candidates with their source and identifier."""
    menu = StaticMenu("local", {"dash": {"repo": "magnars/dash.el", ":host": "github"}})

    item = menu.index()["dash"]

    assert item.source == "local"
    assert item.recipe == {"package": "dash", "repo": "magnars/dash.el", "host": "github"}
    assert isinstance(menu, MenuProvider)


def test_candidates_sorted_union():
    """Test candidates are the sorted union of every menu."""
    registry = ProviderRegistry(
        [
            StaticMenu("one", {"zeta": {"repo": "a/zeta"}, "alpha": {"repo": "a/alpha"}}),
            StaticMenu("two", {"mid": {"repo": "b/mid"}}),
        ]
    )

    assert list(registry.candidates()) == ["alpha", "mid", "zeta"]


def test_earlier_menu_wins():
    """Test identifier clashes resolve to the earlier menu."""
    registry = ProviderRegistry(
        [
            StaticMenu("first", {"dash": {"repo": "first/dash"}}),
            StaticMenu("second", {"dash": {"repo": "second/dash"}}),
        ]
    )

    assert registry.candidates()["dash"].source == "first"
    item = registry.lookup("dash")
    assert item is not None
    assert item.recipe["repo"] == "first/dash"


def test_lookup_unknown():
    """Test lookup returns None for unknown packages."""
    registry = ProviderRegistry([StaticMenu("only", {"dash": {"repo": "a/dash"}})])

    assert registry.lookup("magit") is None
    assert ProviderRegistry().lookup("dash") is None


def test_toml_menu(tmp_path):
    """Test loading candidates from a TOML catalog."""
    catalog = tmp_path / "menu.toml"
    catalog.write_text("""
[packages.magit]
repo = "magit/magit"
host = "github"

[packages.dash]
repo = "magnars/dash.el"
host = "github"
local-repo = "dash"
""")

    menu = TomlMenu(catalog)
    index = menu.index()

    assert menu.name == "menu"
    assert set(index) == {"magit", "dash"}
    assert index["dash"].recipe["local_repo"] == "dash"
    assert index["magit"].source == "menu"


def test_toml_menu_cached_until_update(tmp_path):
    """Test the catalog is re-read only on update()."""
    catalog = tmp_path / "menu.toml"
    catalog.write_text('[packages.a]\nrepo = "x/a"\n')
    menu = TomlMenu(catalog, name="catalog")
    registry = ProviderRegistry([menu])

    assert list(registry.candidates()) == ["a"]

    catalog.write_text('[packages.a]\nrepo = "x/a"\n\n[packages.b]\nrepo = "x/b"\n')
    assert list(registry.candidates()) == ["a"]

    registry.update()
    assert list(registry.candidates()) == ["a", "b"]


def test_toml_menu_missing_file(tmp_path):
    """Test a missing catalog is an empty menu."""
    assert TomlMenu(tmp_path / "absent.toml").index() == {}


def test_toml_menu_invalid(tmp_path):
    """Test invalid TOML raises ConfigError."""
    catalog = tmp_path / "bad.toml"
    catalog.write_text("[packages.a\nrepo = ")

    with pytest.raises(ConfigError, match="Invalid menu file"):
        TomlMenu(catalog).index()

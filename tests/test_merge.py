"""Tests for right-biased property merging."""

from elfetch import merge_properties


def test_disjoint_sets_concatenate():
    """Test merging disjoint sets keeps every key in order."""
    merged = merge_properties({"repo": "user/pkg"}, {"host": "github"})

    assert merged == {"repo": "user/pkg", "host": "github"}
    assert list(merged) == ["repo", "host"]


def test_right_most_value_wins():
    """Test overlapping keys take the last-supplied value."""
    merged = merge_properties(
        {"host": "github", "protocol": "https"},
        {"host": "gitlab"},
        {"protocol": "ssh"},
    )

    assert merged == {"host": "gitlab", "protocol": "ssh"}


def test_key_keeps_first_position():
    """Test an overridden key stays where it first appeared."""
    merged = merge_properties({"a": 1, "b": 2}, {"a": 3})

    assert list(merged) == ["a", "b"]
    assert merged["a"] == 3


def test_none_entries_ignored():
    """Test None inputs are skipped."""
    assert merge_properties(None, {"repo": "x/y"}, None) == {"repo": "x/y"}
    assert merge_properties() == {}
    assert merge_properties(None) == {}


def test_inputs_not_modified():
    """Test merging never mutates its inputs."""
    base = {"host": "github"}
    override = {"host": "gitlab"}

    merge_properties(base, override)

    assert base == {"host": "github"}
    assert override == {"host": "gitlab"}

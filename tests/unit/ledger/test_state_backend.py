"""Unit tests for composite key construction."""

from __future__ import annotations

import pytest

from ledger.state_backend import (
    InvalidCompositeKey,
    create_composite_key,
    split_composite_key,
)


def test_create_composite_key_terminates_each_component() -> None:
    """Composite keys should use U+0000 around every component."""
    key = create_composite_key("owner~name", ["alice", "n1"])

    assert key == "\x00owner~name\x00alice\x00n1\x00"


def test_partial_key_is_prefix_of_full_key() -> None:
    """Fixing the owner should produce a prefix of every full key."""
    partial_key = create_composite_key("owner~name", ["alice"])

    assert create_composite_key("owner~name", ["alice", "n1"]).startswith(partial_key)


def test_partial_key_excludes_longer_owner_names() -> None:
    """An owner prefix must not match owners that merely start with it."""
    partial_key = create_composite_key("owner~name", ["al"])

    assert not create_composite_key("owner~name", ["alice", "n1"]).startswith(partial_key)


def test_distinct_pairs_do_not_collide() -> None:
    """Shifting characters between components must change the key."""
    left = create_composite_key("owner~name", ["ab", "c"])
    right = create_composite_key("owner~name", ["a", "bc"])

    assert left != right


@pytest.mark.parametrize("component", ["bad\x00owner", "bad\U0010ffffowner"])
def test_create_composite_key_rejects_reserved_characters(component: str) -> None:
    """Reserved characters should be rejected in components."""
    with pytest.raises(InvalidCompositeKey):
        create_composite_key("owner~name", [component, "n1"])


def test_split_composite_key_recovers_components() -> None:
    """Splitting should invert composite key construction."""
    key = create_composite_key("owner~name", ["alice", "n1"])

    assert split_composite_key(key) == ("owner~name", ["alice", "n1"])


def test_split_composite_key_rejects_plain_keys() -> None:
    """Plain keys are not composite keys."""
    with pytest.raises(InvalidCompositeKey):
        split_composite_key("rice-lot-1")

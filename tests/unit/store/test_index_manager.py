"""Unit tests for the owner/name index."""

from __future__ import annotations

import pytest

from core.errors import InvalidArgumentError
from ledger.memory_backend import InMemoryLedger
from store.index_manager import INDEX_SENTINEL, OwnerNameIndex
from tests.ledger_helpers import committed


def test_put_writes_sentinel_under_composite_key(ledger: InMemoryLedger) -> None:
    """Index entries should hold the single-byte sentinel."""
    committed(ledger, lambda backend: OwnerNameIndex(backend).put("alice", "n1"))

    value = committed(
        ledger,
        lambda backend: backend.get_state(OwnerNameIndex(backend).index_key("alice", "n1")),
    )

    assert value == INDEX_SENTINEL


def test_names_for_owner_lists_only_that_owner(ledger: InMemoryLedger) -> None:
    """Owner scans should not leak entries of other owners."""

    def seed(backend) -> None:
        index = OwnerNameIndex(backend)
        index.put("alice", "n2")
        index.put("alice", "n1")
        index.put("alicia", "n3")

    committed(ledger, seed)

    names = committed(ledger, lambda backend: OwnerNameIndex(backend).names_for_owner("alice"))

    assert names == ["n1", "n2"]


def test_remove_is_idempotent(ledger: InMemoryLedger) -> None:
    """Removing an absent entry should succeed."""
    committed(ledger, lambda backend: OwnerNameIndex(backend).put("alice", "n1"))
    committed(ledger, lambda backend: OwnerNameIndex(backend).remove("alice", "n1"))
    committed(ledger, lambda backend: OwnerNameIndex(backend).remove("alice", "n1"))

    names = committed(ledger, lambda backend: OwnerNameIndex(backend).names_for_owner("alice"))

    assert names == []


def test_index_key_rejects_reserved_characters(ledger: InMemoryLedger) -> None:
    """Unencodable owners should surface as invalid arguments."""
    with pytest.raises(InvalidArgumentError):
        committed(ledger, lambda backend: OwnerNameIndex(backend).index_key("a\x00b", "n1"))

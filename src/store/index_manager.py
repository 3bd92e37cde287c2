"""Owner/name secondary index.

This module owns the composite-key index that enables owner range scans.
Index entries carry no payload; only their keys matter.
"""

from __future__ import annotations

from core.logging_config import get_logger
from ledger.state_backend import StateBackend, split_composite_key
from store.backend_guard import backend_call

_LOGGER = get_logger(__name__)

OWNER_NAME_INDEX = "owner~name"
# An empty value would delete the key, so entries hold a single NUL byte.
INDEX_SENTINEL = b"\x00"


class OwnerNameIndex:
    """Maintains one index entry per live record keyed by (owner, name)."""

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend

    def index_key(self, owner: str, name: str) -> str:
        """Build the composite index key for a record.

        Args:
            owner: Record owner.
            name: Record name.

        Returns:
            Composite key string.

        Raises:
            InvalidArgumentError: If owner or name is not encodable.
        """
        with backend_call("index_key", name):
            return self._backend.create_composite_key(OWNER_NAME_INDEX, [owner, name])

    def put(self, owner: str, name: str) -> None:
        """Write the index entry for (owner, name)."""
        index_key = self.index_key(owner, name)
        with backend_call("index_put", name):
            self._backend.put_state(index_key, INDEX_SENTINEL)

    def remove(self, owner: str, name: str) -> None:
        """Delete the index entry for (owner, name); absent entries are fine."""
        index_key = self.index_key(owner, name)
        with backend_call("index_remove", name):
            self._backend.delete_state(index_key)

    def names_for_owner(self, owner: str) -> list[str]:
        """List record names indexed under an owner.

        Args:
            owner: Owner to scan.

        Returns:
            Record names in backend key order.

        Raises:
            InvalidArgumentError: If owner is not encodable.
            BackendUnavailableError: If the scan fails.
        """
        names: list[str] = []
        with backend_call("names_for_owner", owner):
            cursor = self._backend.get_state_by_partial_composite_key(OWNER_NAME_INDEX, [owner])
            with cursor:
                for row in cursor:
                    _, attributes = split_composite_key(row.key)
                    names.append(attributes[1])
        _LOGGER.debug("owner_index_scanned", owner=owner, match_count=len(names))
        return names

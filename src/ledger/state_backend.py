"""State backend contract and composite-key helpers.

This module defines the key/value interface the record store consumes.
Concrete ledgers implement it; the store never depends on one directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Generic, Iterator, Sequence, TypeVar

COMPOSITE_KEY_NAMESPACE = "\x00"
MIN_UNICODE_RUNE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"

RowT = TypeVar("RowT")


class BackendError(Exception):
    """Raised by a state backend for any failed call."""


class BackendConflict(BackendError):
    """Raised when a commit conflicts with a concurrent write."""


class BackendTimeout(BackendError):
    """Raised when a backend call exceeds its time limit."""


class BackendQueryRejected(BackendError):
    """Raised when the backend cannot parse or run a query."""


class InvalidCompositeKey(BackendError):
    """Raised when composite key components are not encodable."""


@dataclass(frozen=True)
class QueryRow:
    """Key/value pair produced by a query or range scan."""

    key: str
    value: bytes


@dataclass(frozen=True)
class KeyModification:
    """One committed modification of a single key."""

    tx_id: str
    value: bytes | None
    timestamp: datetime
    is_delete: bool


class ResultCursor(ABC, Generic[RowT]):
    """One-pass iteration handle over backend results.

    Cursors are context managers; leaving the block closes them on
    every exit path. Iterating a closed cursor raises BackendError.
    """

    def __enter__(self) -> "ResultCursor[RowT]":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __iter__(self) -> Iterator[RowT]:
        return self

    @abstractmethod
    def __next__(self) -> RowT:
        """Return the next row or raise StopIteration."""

    @abstractmethod
    def close(self) -> None:
        """Release backend-side iteration state."""


class StateBackend(ABC):
    """Key/value state with query, history, and composite keys."""

    @abstractmethod
    def get_state(self, key: str) -> bytes | None:
        """Return the committed value for key, or None when absent."""

    @abstractmethod
    def put_state(self, key: str, value: bytes) -> None:
        """Write a non-empty value for key."""

    @abstractmethod
    def delete_state(self, key: str) -> None:
        """Delete key; deleting an absent key is not an error."""

    @abstractmethod
    def get_query_result(self, query: str) -> ResultCursor[QueryRow]:
        """Run an opaque backend-specific query."""

    @abstractmethod
    def get_history_for_key(self, key: str) -> ResultCursor[KeyModification]:
        """Return every committed modification of key."""

    @abstractmethod
    def get_state_by_partial_composite_key(
        self,
        object_type: str,
        attributes: Sequence[str],
    ) -> ResultCursor[QueryRow]:
        """Scan all composite keys sharing an object type and leading attributes."""

    def create_composite_key(self, object_type: str, attributes: Sequence[str]) -> str:
        """Build a prefix-scannable composite key."""
        return create_composite_key(object_type, attributes)


class Ledger(ABC):
    """Factory of transactional state backends."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[StateBackend]:
        """Open a transaction committed on normal exit, discarded on error."""


def create_composite_key(object_type: str, attributes: Sequence[str]) -> str:
    """Build a composite key from an object type and attributes.

    Each component is terminated by U+0000, so fixing leading attributes
    yields a contiguous key range.

    Args:
        object_type: Namespace tag of the key.
        attributes: Ordered key components.

    Returns:
        Composite key string.

    Raises:
        InvalidCompositeKey: If a component is not encodable.
    """
    _validate_component(object_type)
    parts = [COMPOSITE_KEY_NAMESPACE, object_type, MIN_UNICODE_RUNE]
    for attribute in attributes:
        _validate_component(attribute)
        parts.append(attribute)
        parts.append(MIN_UNICODE_RUNE)
    return "".join(parts)


def split_composite_key(composite_key: str) -> tuple[str, list[str]]:
    """Split a composite key back into object type and attributes.

    Args:
        composite_key: Key built by create_composite_key.

    Returns:
        Pair of object type and attribute list.

    Raises:
        InvalidCompositeKey: If key is not a composite key.
    """
    if not composite_key.startswith(COMPOSITE_KEY_NAMESPACE):
        raise InvalidCompositeKey(f"Key {composite_key!r} is not a composite key.")
    components = composite_key[1:].split(MIN_UNICODE_RUNE)
    if len(components) < 2 or components[-1] != "":
        raise InvalidCompositeKey(f"Key {composite_key!r} is not a composite key.")
    return components[0], components[1:-1]


def _validate_component(component: str) -> None:
    if not isinstance(component, str):
        raise InvalidCompositeKey(
            f"Composite key component must be a string, got {type(component).__name__}."
        )
    if MIN_UNICODE_RUNE in component or MAX_UNICODE_RUNE in component:
        raise InvalidCompositeKey(
            f"Composite key component {component!r} contains a reserved character "
            "(U+0000 or U+10FFFF)."
        )

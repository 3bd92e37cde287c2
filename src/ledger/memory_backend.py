"""In-memory versioned ledger.

This module keeps committed state, per-key version numbers, and an
append-only modification history. Transactions buffer writes and are
validated against the versions they read before commit.
"""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import threading
from typing import Callable, Generic, Iterator, Sequence, TypeVar
from uuid import uuid4

from core.constants import DEFAULT_CALL_TIMEOUT_SECONDS, TEXT_ENCODING
from core.logging_config import get_logger
from ledger.selector import SelectorError, matches, parse_query
from ledger.state_backend import (
    BackendConflict,
    BackendError,
    BackendQueryRejected,
    BackendTimeout,
    KeyModification,
    Ledger,
    QueryRow,
    ResultCursor,
    StateBackend,
    create_composite_key,
)

_LOGGER = get_logger(__name__)

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class VersionedValue:
    """Committed value with the block height that wrote it."""

    value: bytes
    version: int


class SnapshotCursor(ResultCursor[RowT], Generic[RowT]):
    """Cursor over rows materialized when the cursor was opened."""

    def __init__(self, rows: list[RowT]) -> None:
        self._rows = iter(rows)
        self._closed = False

    def __next__(self) -> RowT:
        if self._closed:
            raise BackendError("Cursor is closed; open a new query to iterate again.")
        return next(self._rows)

    def close(self) -> None:
        self._closed = True
        self._rows = iter(())


class InMemoryLedger(Ledger):
    """Versioned key/value ledger held in process memory."""

    def __init__(
        self,
        call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize an empty ledger.

        Args:
            call_timeout_seconds: Maximum wait for the ledger lock.
            clock: Optional source of commit timestamps.
        """
        self._call_timeout_seconds = call_timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._state: dict[str, VersionedValue] = {}
        self._versions: dict[str, int] = {}
        self._history: dict[str, list[KeyModification]] = {}
        self._block_height = 0

    @property
    def block_height(self) -> int:
        """Number of committed transactions that changed state."""
        return self._block_height

    @contextmanager
    def transaction(self) -> Iterator["LedgerTransaction"]:
        """Open a transaction committed on normal exit.

        Yields:
            Transaction implementing the state backend contract.

        Raises:
            BackendConflict: If a key read by the transaction changed.
            BackendTimeout: If the ledger lock cannot be acquired in time.
        """
        with self.locked():
            with self._storage_guard(exclusive=False):
                self._refresh()
        transaction = LedgerTransaction(self, tx_id=uuid4().hex)
        try:
            yield transaction
        except BaseException:
            transaction.finish()
            raise
        self._commit(transaction)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the ledger lock within the configured timeout.

        Raises:
            BackendTimeout: If the lock is not acquired in time.
        """
        if not self._lock.acquire(timeout=self._call_timeout_seconds):
            raise BackendTimeout(
                f"Timed out after {self._call_timeout_seconds}s waiting for the ledger lock."
            )
        try:
            yield
        finally:
            self._lock.release()

    def committed_value(self, key: str) -> tuple[bytes | None, int]:
        """Return committed value and version of key; caller holds the lock."""
        entry = self._state.get(key)
        version = self._versions.get(key, 0)
        return (entry.value if entry else None), version

    def committed_items(self) -> list[tuple[str, bytes]]:
        """Return committed key/value pairs sorted by key; caller holds the lock."""
        return [(key, self._state[key].value) for key in sorted(self._state)]

    def committed_history(self, key: str) -> list[KeyModification]:
        """Return the modification history of key; caller holds the lock."""
        return list(self._history.get(key, ()))

    def _commit(self, transaction: "LedgerTransaction") -> None:
        with self.locked():
            transaction.finish()
            with self._storage_guard(exclusive=bool(transaction.write_set)):
                self._refresh(force=bool(transaction.write_set))
                for key, read_version in transaction.read_set.items():
                    if self._versions.get(key, 0) != read_version:
                        raise BackendConflict(
                            f"Key {key!r} changed after transaction {transaction.tx_id} read it "
                            f"(read version {read_version}, "
                            f"committed version {self._versions.get(key, 0)})."
                        )
                writes = {
                    key: value
                    for key, value in transaction.write_set.items()
                    if value is not None or key in self._state
                }
                if not writes:
                    return
                self._apply_commit(transaction.tx_id, writes)
        _LOGGER.debug(
            "transaction_committed",
            tx_id=transaction.tx_id,
            block_height=self._block_height,
            write_count=len(writes),
        )

    def _apply_commit(self, tx_id: str, writes: dict[str, bytes | None]) -> None:
        """Apply one block of writes, restoring prior state if it cannot be stored."""
        snapshot = _CommitSnapshot(
            block_height=self._block_height,
            state=dict(self._state),
            versions=dict(self._versions),
            history_lengths={key: len(self._history.get(key, ())) for key in writes},
        )
        try:
            self._block_height += 1
            timestamp = self._clock()
            for key, value in writes.items():
                self._apply_write(tx_id, timestamp, key, value)
            self._after_commit()
        except BaseException:
            self._restore(snapshot)
            _LOGGER.warning("transaction_rolled_back", tx_id=tx_id, write_count=len(writes))
            raise

    def _restore(self, snapshot: "_CommitSnapshot") -> None:
        self._block_height = snapshot.block_height
        self._state = snapshot.state
        self._versions = snapshot.versions
        for key, length in snapshot.history_lengths.items():
            if length:
                del self._history[key][length:]
            else:
                self._history.pop(key, None)

    def _apply_write(
        self,
        tx_id: str,
        timestamp: datetime,
        key: str,
        value: bytes | None,
    ) -> None:
        self._versions[key] = self._block_height
        if value is None:
            self._state.pop(key, None)
        else:
            self._state[key] = VersionedValue(value=value, version=self._block_height)
        modification = KeyModification(
            tx_id=tx_id,
            value=value,
            timestamp=timestamp,
            is_delete=value is None,
        )
        self._history.setdefault(key, []).append(modification)

    def _storage_guard(self, exclusive: bool) -> AbstractContextManager[None]:
        """Return a guard held while durable storage is read or replaced."""
        return nullcontext()

    def _refresh(self, force: bool = False) -> None:
        """Hook run under the lock to pick up state committed elsewhere.

        Args:
            force: Reload even when storage looks unchanged.
        """

    def _after_commit(self) -> None:
        """Hook run under the lock after a commit applied writes.

        Raising here rolls the commit back.
        """


@dataclass(frozen=True)
class _CommitSnapshot:
    """Ledger fields captured before a commit is applied."""

    block_height: int
    state: dict[str, VersionedValue]
    versions: dict[str, int]
    history_lengths: dict[str, int]


class LedgerTransaction(StateBackend):
    """Transaction over an in-memory ledger.

    Reads observe committed state only; writes are buffered until commit.
    """

    def __init__(self, ledger: InMemoryLedger, tx_id: str) -> None:
        self.tx_id = tx_id
        self.read_set: dict[str, int] = {}
        self.write_set: dict[str, bytes | None] = {}
        self._ledger = ledger
        self._finished = False

    def finish(self) -> None:
        """Mark the transaction as no longer usable."""
        self._finished = True

    def get_state(self, key: str) -> bytes | None:
        self._ensure_open()
        _validate_key(key)
        with self._ledger.locked():
            value, version = self._ledger.committed_value(key)
        self.read_set.setdefault(key, version)
        return value

    def put_state(self, key: str, value: bytes) -> None:
        self._ensure_open()
        _validate_key(key)
        if not isinstance(value, (bytes, bytearray)) or not value:
            raise BackendError(
                f"Value for key {key!r} must be non-empty bytes; use delete_state to remove keys."
            )
        self.write_set[key] = bytes(value)

    def delete_state(self, key: str) -> None:
        self._ensure_open()
        _validate_key(key)
        self.write_set[key] = None

    def get_query_result(self, query: str) -> ResultCursor[QueryRow]:
        self._ensure_open()
        try:
            parsed = parse_query(query)
        except SelectorError as error:
            raise BackendQueryRejected(str(error)) from error
        with self._ledger.locked():
            items = self._ledger.committed_items()
        rows = [
            QueryRow(key=key, value=value)
            for key, value in items
            if matches(_json_document(value), parsed.selector)
        ]
        rows = rows[parsed.skip :]
        if parsed.limit is not None:
            rows = rows[: parsed.limit]
        return SnapshotCursor(rows)

    def get_history_for_key(self, key: str) -> ResultCursor[KeyModification]:
        self._ensure_open()
        _validate_key(key)
        with self._ledger.locked():
            history = self._ledger.committed_history(key)
        return SnapshotCursor(history)

    def get_state_by_partial_composite_key(
        self,
        object_type: str,
        attributes: Sequence[str],
    ) -> ResultCursor[QueryRow]:
        self._ensure_open()
        prefix = create_composite_key(object_type, attributes)
        with self._ledger.locked():
            items = self._ledger.committed_items()
        rows = [QueryRow(key=key, value=value) for key, value in items if key.startswith(prefix)]
        return SnapshotCursor(rows)

    def _ensure_open(self) -> None:
        if self._finished:
            raise BackendError(
                f"Transaction {self.tx_id} already finished; open a new transaction."
            )


def _validate_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise BackendError("Ledger keys must be non-empty strings.")


def _json_document(value: bytes) -> object:
    """Decode a stored value as JSON, or None when it is not JSON."""
    try:
        return json.loads(value.decode(TEXT_ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None

"""JSON file persistence for the versioned ledger.

This module stores committed state, versions, and history in a single
JSON document so ledger contents survive process restarts. Processes
sharing one document serialize commits through an advisory file lock.
"""

from __future__ import annotations

import base64
from contextlib import contextmanager
from datetime import datetime
import fcntl
import json
import os
from pathlib import Path
import time
from typing import Any, Callable, Iterator

from core.constants import DEFAULT_CALL_TIMEOUT_SECONDS, TEXT_ENCODING
from core.logging_config import get_logger
from ledger.memory_backend import InMemoryLedger, VersionedValue
from ledger.state_backend import BackendError, BackendTimeout, KeyModification

_LOGGER = get_logger(__name__)
LEDGER_FORMAT_VERSION = 1
LOCK_FILE_SUFFIX = ".lock"
_LOCK_POLL_SECONDS = 0.01

FileSignature = tuple[int, int, int]


class JsonFileLedger(InMemoryLedger):
    """Versioned ledger persisted to a JSON file after every commit.

    Every transaction starts from the latest document on disk, and every
    commit re-reads it under an exclusive lock before validating, so
    writes from other processes surface as conflicts instead of being
    overwritten.
    """

    def __init__(
        self,
        ledger_path: Path,
        call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Open or create a file-backed ledger.

        Args:
            ledger_path: JSON document path.
            call_timeout_seconds: Maximum wait for the ledger and file locks.
            clock: Optional source of commit timestamps.

        Raises:
            BackendError: If an existing ledger file cannot be read.
        """
        super().__init__(call_timeout_seconds=call_timeout_seconds, clock=clock)
        self._ledger_path = ledger_path
        self._loaded_signature: FileSignature | None = None
        with self._storage_guard(exclusive=False):
            self._refresh()

    @property
    def ledger_path(self) -> Path:
        """Location of the persisted ledger document."""
        return self._ledger_path

    @contextmanager
    def _storage_guard(self, exclusive: bool) -> Iterator[None]:
        if not exclusive and not self._ledger_path.exists():
            yield
            return
        lock_path = self._ledger_path.with_name(self._ledger_path.name + LOCK_FILE_SUFFIX)
        with ledger_file_lock(lock_path, exclusive, self._call_timeout_seconds):
            yield

    def _refresh(self, force: bool = False) -> None:
        signature = _file_signature(self._ledger_path)
        if signature is None or (not force and signature == self._loaded_signature):
            return
        self._load(read_ledger_file(self._ledger_path))
        self._loaded_signature = signature
        _LOGGER.debug(
            "ledger_loaded",
            ledger_path=str(self._ledger_path),
            block_height=self._block_height,
        )

    def _after_commit(self) -> None:
        payload = {
            "format_version": LEDGER_FORMAT_VERSION,
            "block_height": self._block_height,
            "versions": dict(self._versions),
            "state": {
                key: {"value": _encode_bytes(entry.value), "version": entry.version}
                for key, entry in self._state.items()
            },
            "history": {
                key: [_modification_to_dict(item) for item in modifications]
                for key, modifications in self._history.items()
            },
        }
        write_ledger_file(self._ledger_path, payload)
        self._loaded_signature = _file_signature(self._ledger_path)
        _LOGGER.debug(
            "ledger_persisted",
            ledger_path=str(self._ledger_path),
            block_height=self._block_height,
        )

    def _load(self, payload: dict[str, Any]) -> None:
        try:
            block_height = int(payload["block_height"])
            versions = {str(key): int(value) for key, value in payload["versions"].items()}
            state = {
                str(key): VersionedValue(
                    value=_decode_bytes(entry["value"]),
                    version=int(entry["version"]),
                )
                for key, entry in payload["state"].items()
            }
            history = {
                str(key): [_modification_from_dict(item) for item in modifications]
                for key, modifications in payload["history"].items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as error:
            raise BackendError(
                f"Ledger file {self._ledger_path} has an invalid layout: {error}. "
                "Restore the file from a backup or remove it to start an empty ledger."
            ) from error
        self._block_height = block_height
        self._versions = versions
        self._state = state
        self._history = history


@contextmanager
def ledger_file_lock(lock_path: Path, exclusive: bool, timeout_seconds: float) -> Iterator[None]:
    """Hold an advisory lock on the ledger lock file.

    Args:
        lock_path: Lock file path, created when missing.
        exclusive: Take an exclusive lock instead of a shared one.
        timeout_seconds: Maximum wait for the lock.

    Raises:
        BackendTimeout: If the lock is not acquired in time.
        BackendError: If the lock file cannot be opened.
    """
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as error:
        raise BackendError(f"Failed to open ledger lock file {lock_path}: {error}") from error
    try:
        _acquire_flock(fd, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH, timeout_seconds)
        yield
    finally:
        # Closing the descriptor releases the lock.
        os.close(fd)


def _acquire_flock(fd: int, operation: int, timeout_seconds: float) -> None:
    deadline = time.monotonic() + timeout_seconds
    while True:
        try:
            fcntl.flock(fd, operation | fcntl.LOCK_NB)
            return
        except BlockingIOError:
            if time.monotonic() >= deadline:
                raise BackendTimeout(
                    f"Timed out after {timeout_seconds}s waiting for the ledger file lock; "
                    "another process is committing to the same data root."
                ) from None
            time.sleep(_LOCK_POLL_SECONDS)


def _file_signature(ledger_path: Path) -> FileSignature | None:
    """Identify the current ledger document, or None when it does not exist."""
    try:
        stat = ledger_path.stat()
    except FileNotFoundError:
        return None
    except OSError as error:
        raise BackendError(f"Failed to stat ledger file {ledger_path}: {error}") from error
    return stat.st_ino, stat.st_mtime_ns, stat.st_size


def read_ledger_file(ledger_path: Path) -> dict[str, Any]:
    """Read and validate the ledger document.

    Args:
        ledger_path: JSON document path.

    Returns:
        Parsed ledger object.

    Raises:
        BackendError: If the file cannot be read or parsed.
    """
    try:
        payload = json.loads(ledger_path.read_text(encoding=TEXT_ENCODING))
    except OSError as error:
        raise BackendError(f"Failed to read ledger file {ledger_path}: {error}") from error
    except json.JSONDecodeError as error:
        raise BackendError(
            f"Failed to parse ledger file {ledger_path}: {error.msg}. "
            "Restore the file from a backup or remove it to start an empty ledger."
        ) from error
    if not isinstance(payload, dict):
        raise BackendError(
            f"Failed to parse ledger file {ledger_path}: expected JSON object at top level."
        )
    return payload


def write_ledger_file(ledger_path: Path, payload: dict[str, Any]) -> None:
    """Atomically replace the ledger document.

    Args:
        ledger_path: JSON document path.
        payload: Ledger object to persist.

    Raises:
        BackendError: If the file cannot be written.
    """
    temporary_path = ledger_path.with_name(ledger_path.name + ".tmp")
    try:
        ledger_path.parent.mkdir(parents=True, exist_ok=True)
        temporary_path.write_text(json.dumps(payload, indent=2) + "\n", encoding=TEXT_ENCODING)
        temporary_path.replace(ledger_path)
    except OSError as error:
        raise BackendError(f"Failed to write ledger file {ledger_path}: {error}") from error


def _modification_to_dict(modification: KeyModification) -> dict[str, Any]:
    return {
        "tx_id": modification.tx_id,
        "value": None if modification.value is None else _encode_bytes(modification.value),
        "timestamp": modification.timestamp.isoformat(),
        "is_delete": modification.is_delete,
    }


def _modification_from_dict(payload: dict[str, Any]) -> KeyModification:
    raw_value = payload["value"]
    return KeyModification(
        tx_id=str(payload["tx_id"]),
        value=None if raw_value is None else _decode_bytes(raw_value),
        timestamp=datetime.fromisoformat(str(payload["timestamp"])),
        is_delete=bool(payload["is_delete"]),
    )


def _encode_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _decode_bytes(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)

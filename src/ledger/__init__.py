"""Ledger state backends.

This package defines the state backend contract consumed by the record
store and ships an in-memory ledger and a JSON-file ledger.
"""

from __future__ import annotations

from core.config import LedgerConfig
from core.constants import BACKEND_KIND_MEMORY, LEDGER_FILE_NAME
from core.errors import BackendUnavailableError
from ledger.file_backend import JsonFileLedger
from ledger.memory_backend import InMemoryLedger
from ledger.state_backend import BackendError, Ledger


def open_ledger(config: LedgerConfig) -> Ledger:
    """Open the ledger selected by configuration.

    Args:
        config: Runtime configuration.

    Returns:
        Ready-to-use ledger.

    Raises:
        BackendUnavailableError: If persisted ledger state cannot be loaded.
    """
    if config.backend_kind == BACKEND_KIND_MEMORY:
        return InMemoryLedger(call_timeout_seconds=config.call_timeout_seconds)
    ledger_path = config.data_root / LEDGER_FILE_NAME
    try:
        return JsonFileLedger(ledger_path, call_timeout_seconds=config.call_timeout_seconds)
    except BackendError as error:
        raise BackendUnavailableError(
            str(error),
            operation="open_ledger",
            key=str(ledger_path),
        ) from error

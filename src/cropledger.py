"""Public SDK surface for cropledger.

This module provides a stable import path for library users.
It re-exports the primary client, config, and typed models.
"""

from __future__ import annotations

from contract.client import CropLedgerClient
from contract.command_router import CommandRouter
from core.config import LedgerConfig
from core.errors import (
    AlreadyExistsError,
    BackendUnavailableError,
    ConflictError,
    CropLedgerError,
    DecodingError,
    EncodingError,
    InvalidArgumentError,
    NotFoundError,
    PartialDeleteError,
    QueryError,
)
from core.types import CommandResult, HistoryEntry, QueryResult, Record
from ledger import open_ledger
from ledger.file_backend import JsonFileLedger
from ledger.memory_backend import InMemoryLedger
from store.record_codec import decode_record, encode_record

__all__ = [
    "AlreadyExistsError",
    "BackendUnavailableError",
    "CommandResult",
    "CommandRouter",
    "ConflictError",
    "CropLedgerClient",
    "CropLedgerError",
    "DecodingError",
    "EncodingError",
    "HistoryEntry",
    "InMemoryLedger",
    "InvalidArgumentError",
    "JsonFileLedger",
    "LedgerConfig",
    "NotFoundError",
    "PartialDeleteError",
    "QueryError",
    "QueryResult",
    "Record",
    "decode_record",
    "encode_record",
    "open_ledger",
]

"""cropledger exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each failure kind maps onto one structured command result.
"""

from __future__ import annotations


class CropLedgerError(Exception):
    """Base exception for all cropledger failures.

    Attributes:
        operation: Store operation that failed, when known.
        key: Record name or ledger key involved, when known.
    """

    kind = "internal"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.key = key


class ConfigError(CropLedgerError):
    """Raised for invalid runtime configuration."""

    kind = "config_error"


class InvalidArgumentError(CropLedgerError):
    """Raised for malformed positional input or unknown commands."""

    kind = "invalid_argument"


class AlreadyExistsError(CropLedgerError):
    """Raised when creating a record whose name is already live."""

    kind = "already_exists"


class NotFoundError(CropLedgerError):
    """Raised when operating on a record that does not exist."""

    kind = "not_found"


class EncodingError(CropLedgerError):
    """Raised when a record cannot be serialized."""

    kind = "encoding_error"


class DecodingError(CropLedgerError):
    """Raised when stored bytes are not a well-formed record."""

    kind = "decoding_error"


class QueryError(CropLedgerError):
    """Raised when the backend rejects a query or fails mid-iteration."""

    kind = "query_error"


class ConflictError(CropLedgerError):
    """Raised when the backend detects a concurrent-write conflict."""

    kind = "conflict"


class BackendUnavailableError(CropLedgerError):
    """Raised when a backend call times out or fails in transport."""

    kind = "backend_unavailable"


class PartialDeleteError(CropLedgerError):
    """Raised when a record was deleted but its index entry was not."""

    kind = "partial_delete"

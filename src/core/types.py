"""Shared typed models.

This module defines immutable data models used by the store,
command router, and CLI layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from core.constants import STATUS_BAD_REQUEST, STATUS_OK


@dataclass(frozen=True)
class Record:
    """Ledger asset record.

    Attributes:
        name: Globally unique primary key; immutable once created.
        owner: Indexed secondary attribute.
        attributes: Opaque nested domain fields carried unchanged.
        flags: Independently settable named boolean toggles.
    """

    name: str
    owner: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    flags: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryResult:
    """One row produced by a predicate or owner query.

    Attributes:
        key: Primary ledger key of the matching record.
        value: Stored record bytes, unchanged.
    """

    key: str
    value: bytes


@dataclass(frozen=True)
class HistoryEntry:
    """One committed version of a record.

    Attributes:
        tx_id: Identifier of the committing transaction.
        value: Stored record bytes, or None for a deletion.
        timestamp: UTC commit timestamp.
        is_delete: Whether this version is a deletion tombstone.
    """

    tx_id: str
    value: bytes | None
    timestamp: datetime
    is_delete: bool


@dataclass(frozen=True)
class CommandResult:
    """Structured outcome of one command invocation.

    Attributes:
        status: HTTP-like status code, 200 on success.
        payload: Success payload bytes, empty on failure.
        message: Human-readable failure message, empty on success.
        error_kind: Failure kind identifier, None on success.
    """

    status: int
    payload: bytes = b""
    message: str = ""
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        """Return whether the command succeeded."""
        return STATUS_OK <= self.status < STATUS_BAD_REQUEST

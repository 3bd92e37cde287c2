"""Asset record store.

This module orchestrates record create, read, update, flag, transfer,
and delete operations on a state backend. It enforces existence and
uniqueness rules and keeps the owner/name index consistent with
primary records.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from core.errors import (
    AlreadyExistsError,
    CropLedgerError,
    DecodingError,
    InvalidArgumentError,
    NotFoundError,
    PartialDeleteError,
)
from core.logging_config import get_logger
from core.types import Record
from ledger.state_backend import StateBackend
from store.backend_guard import backend_call
from store.index_manager import OwnerNameIndex
from store.record_codec import decode_record, encode_record

_LOGGER = get_logger(__name__)


class AssetStore:
    """Record store over a single state backend.

    Each record name is either absent or live. Create requires absent;
    every other mutation requires live.
    """

    def __init__(self, backend: StateBackend) -> None:
        """Initialize store over a backend.

        Args:
            backend: State backend, usually one open transaction.
        """
        self._backend = backend
        self._index = OwnerNameIndex(backend)

    def create(
        self,
        name: str,
        owner: str,
        attributes: Mapping[str, Any],
        flags: Mapping[str, bool] | None = None,
    ) -> Record:
        """Create a new live record and its index entry.

        Args:
            name: Unique record name.
            owner: Record owner; stored lower-cased.
            attributes: Opaque domain attributes.
            flags: Optional named boolean toggles.

        Returns:
            Created record.

        Raises:
            AlreadyExistsError: If a live record already uses the name.
            InvalidArgumentError: If name, owner, or flags are malformed.
        """
        _require_text(name, "name", "create")
        _require_text(owner, "owner", "create")
        owner = normalize_owner(owner)
        record = Record(
            name=name,
            owner=owner,
            attributes=dict(attributes),
            flags=_validated_flags(flags or {}, name),
        )
        payload = encode_record(record)
        self._index.index_key(owner, name)
        if self._get(name, "create") is not None:
            raise AlreadyExistsError(
                f"Record '{name}' already exists. Choose a different name or update it.",
                operation="create",
                key=name,
            )
        with backend_call("create", name):
            self._backend.put_state(name, payload)
        self._index.put(owner, name)
        _LOGGER.info("record_created", name=name, owner=owner)
        return record

    def read(self, name: str) -> bytes:
        """Return the stored bytes of a live record unchanged.

        Raises:
            NotFoundError: If the record does not exist.
        """
        raw_value = self._get(name, "read")
        if raw_value is None:
            raise _not_found(name, "read")
        return raw_value

    def get(self, name: str) -> Record:
        """Return a live record decoded.

        Raises:
            NotFoundError: If the record does not exist.
            DecodingError: If stored bytes are malformed.
        """
        return self._load(name, "get")

    def update(
        self,
        name: str,
        attributes: Mapping[str, Any],
        flags: Mapping[str, bool] | None = None,
        merge: bool = False,
    ) -> Record:
        """Replace the attributes of a live record.

        Name and owner are preserved; the index is untouched. Supplied
        flags are applied over the existing ones.

        Args:
            name: Record name.
            attributes: New attributes.
            flags: Optional flag values to change.
            merge: Merge attributes over existing top-level attributes
                instead of replacing them.

        Returns:
            Updated record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        existing = self._load(name, "update")
        new_attributes = {**existing.attributes, **attributes} if merge else dict(attributes)
        new_flags = {**existing.flags, **_validated_flags(flags or {}, name)}
        updated = replace(existing, attributes=new_attributes, flags=new_flags)
        self._write(updated, "update")
        _LOGGER.info("record_updated", name=name, merged=merge)
        return updated

    def set_flag(self, name: str, flag_name: str, value: bool) -> Record:
        """Set exactly one named flag on a live record.

        Args:
            name: Record name.
            flag_name: Flag to change.
            value: New flag value.

        Returns:
            Updated record.

        Raises:
            NotFoundError: If the record does not exist.
            InvalidArgumentError: If flag name or value is malformed.
        """
        _require_text(flag_name, "flag name", "set_flag")
        if not isinstance(value, bool):
            raise InvalidArgumentError(
                f"Flag '{flag_name}' value must be a boolean, got {value!r}.",
                operation="set_flag",
                key=name,
            )
        existing = self._load(name, "set_flag")
        updated = replace(existing, flags={**existing.flags, flag_name: value})
        self._write(updated, "set_flag")
        _LOGGER.info("record_flag_set", name=name, flag=flag_name, value=value)
        return updated

    def transfer(self, name: str, new_owner: str) -> Record:
        """Move a live record to a new owner and relocate its index entry.

        Args:
            name: Record name.
            new_owner: New owner; stored lower-cased.

        Returns:
            Updated record.

        Raises:
            NotFoundError: If the record does not exist.
            InvalidArgumentError: If the new owner is malformed.
        """
        _require_text(new_owner, "owner", "transfer")
        owner = normalize_owner(new_owner)
        self._index.index_key(owner, name)
        existing = self._load(name, "transfer")
        updated = replace(existing, owner=owner)
        self._write(updated, "transfer")
        if existing.owner != owner:
            self._index.remove(existing.owner, name)
            self._index.put(owner, name)
            _LOGGER.info(
                "index_relocated",
                name=name,
                previous_owner=existing.owner,
                owner=owner,
            )
        return updated

    def delete(self, name: str) -> None:
        """Delete a live record and its index entry.

        The primary entry is removed first. When index removal then
        fails the deletion stands and PartialDeleteError is raised.

        Raises:
            NotFoundError: If the record does not exist.
            PartialDeleteError: If the index entry could not be removed.
        """
        existing = self._load(name, "delete")
        with backend_call("delete", name):
            self._backend.delete_state(name)
        try:
            self._index.remove(existing.owner, name)
        except CropLedgerError as error:
            _LOGGER.error("record_delete_partial", name=name, owner=existing.owner)
            raise PartialDeleteError(
                f"Record '{name}' was deleted but its owner index entry was not removed: "
                f"{error}. The owner index may list a stale entry until delete is retried "
                "or the entry is removed.",
                operation="delete",
                key=name,
            ) from error
        _LOGGER.info("record_deleted", name=name, owner=existing.owner)

    def list_by_owner(self, owner: str) -> list[Record]:
        """Return live records indexed under an owner.

        Index entries whose record is gone are skipped.

        Args:
            owner: Owner to scan; matched case-insensitively.

        Returns:
            Records in index order.
        """
        _require_text(owner, "owner", "list_by_owner")
        owner = normalize_owner(owner)
        records: list[Record] = []
        for name in self._index.names_for_owner(owner):
            raw_value = self._get(name, "list_by_owner")
            if raw_value is None:
                _LOGGER.warning("stale_index_entry", owner=owner, name=name)
                continue
            records.append(_decode_stored(raw_value, name, "list_by_owner"))
        return records

    def _get(self, name: str, operation: str) -> bytes | None:
        _require_text(name, "name", operation)
        with backend_call(operation, name):
            return self._backend.get_state(name)

    def _load(self, name: str, operation: str) -> Record:
        raw_value = self._get(name, operation)
        if raw_value is None:
            raise _not_found(name, operation)
        return _decode_stored(raw_value, name, operation)

    def _write(self, record: Record, operation: str) -> None:
        payload = encode_record(record)
        with backend_call(operation, record.name):
            self._backend.put_state(record.name, payload)


def normalize_owner(owner: str) -> str:
    """Return the canonical, lower-cased form of an owner name."""
    return owner.lower()

def _decode_stored(raw_value: bytes, name: str, operation: str) -> Record:
    try:
        return decode_record(raw_value)
    except DecodingError as error:
        raise DecodingError(
            f"Stored record '{name}' is malformed: {error}",
            operation=operation,
            key=name,
        ) from error


def _not_found(name: str, operation: str) -> NotFoundError:
    return NotFoundError(
        f"Record '{name}' does not exist. Create it before running {operation}.",
        operation=operation,
        key=name,
    )


def _require_text(value: Any, field_name: str, operation: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(
            f"Record {field_name} must be a non-empty string, got {value!r}.",
            operation=operation,
        )


def _validated_flags(flags: Mapping[str, bool], name: str) -> dict[str, bool]:
    for flag_name, value in flags.items():
        if not isinstance(flag_name, str) or not flag_name or not isinstance(value, bool):
            raise InvalidArgumentError(
                f"Flags must map non-empty names to booleans, got {flag_name!r}: {value!r}.",
                operation="flags",
                key=name,
            )
    return dict(flags)

"""Shared JSON serialization for Record payloads.

This module centralizes Record byte encoding and validation.
It is reused by the asset store, query rendering, and history rendering.
"""

from __future__ import annotations

import json
from typing import Any

from core.constants import TEXT_ENCODING
from core.errors import DecodingError, EncodingError
from core.types import Record

_RECORD_FIELDS = ("attributes", "flags", "name", "owner")


def record_to_payload(record: Record) -> dict[str, Any]:
    """Serialize Record into a JSON-safe payload.

    Args:
        record: Record instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "name": record.name,
        "owner": record.owner,
        "attributes": dict(record.attributes),
        "flags": dict(record.flags),
    }


def record_from_payload(payload: Any) -> Record:
    """Validate a decoded JSON payload and build a Record.

    Args:
        payload: Decoded JSON value.

    Returns:
        Parsed Record.

    Raises:
        DecodingError: If fields are missing or have wrong types.
    """
    if not isinstance(payload, dict):
        raise DecodingError("Record payload must be a JSON object.")
    missing = [name for name in _RECORD_FIELDS if name not in payload]
    if missing:
        raise DecodingError(f"Record payload is missing fields: {', '.join(missing)}.")
    name = payload["name"]
    owner = payload["owner"]
    attributes = payload["attributes"]
    flags = payload["flags"]
    if not isinstance(name, str) or not isinstance(owner, str):
        raise DecodingError("Record fields 'name' and 'owner' must be strings.")
    if not isinstance(attributes, dict):
        raise DecodingError("Record field 'attributes' must be a JSON object.")
    if not isinstance(flags, dict) or not all(isinstance(value, bool) for value in flags.values()):
        raise DecodingError("Record field 'flags' must map names to booleans.")
    return Record(name=name, owner=owner, attributes=attributes, flags=flags)


def encode_record(record: Record) -> bytes:
    """Encode a Record into deterministic JSON bytes.

    Args:
        record: Record to encode.

    Returns:
        UTF-8 JSON bytes with sorted keys.

    Raises:
        EncodingError: If attributes hold non-serializable values.
    """
    try:
        text = json.dumps(
            record_to_payload(record),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as error:
        raise EncodingError(
            f"Record '{record.name}' cannot be encoded: {error}. "
            "Attributes must contain only JSON values.",
            operation="encode",
            key=record.name,
        ) from error
    return text.encode(TEXT_ENCODING)


def decode_record(raw_value: bytes) -> Record:
    """Decode JSON bytes into a Record.

    Args:
        raw_value: Encoded record bytes.

    Returns:
        Parsed Record.

    Raises:
        DecodingError: If bytes are not a well-formed encoded record.
    """
    try:
        payload = json.loads(raw_value.decode(TEXT_ENCODING))
    except UnicodeDecodeError as error:
        raise DecodingError(f"Record bytes are not valid UTF-8: {error.reason}.") from error
    except json.JSONDecodeError as error:
        raise DecodingError(f"Record bytes are not valid JSON: {error.msg}.") from error
    return record_from_payload(payload)


def decode_json_value(raw_value: bytes) -> Any:
    """Decode stored JSON bytes without imposing the Record layout.

    Args:
        raw_value: Stored bytes.

    Returns:
        Decoded JSON value.

    Raises:
        DecodingError: If bytes are not valid UTF-8 JSON.
    """
    try:
        return json.loads(raw_value.decode(TEXT_ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise DecodingError(f"Stored value is not valid JSON: {error}.") from error

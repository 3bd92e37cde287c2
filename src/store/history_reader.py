"""Record history playback.

This module reads every committed version of one key from the backend
in backend order and renders the history as JSON.
"""

from __future__ import annotations

import json
from typing import Sequence

from core.constants import TEXT_ENCODING
from core.errors import InvalidArgumentError
from core.logging_config import get_logger
from core.types import HistoryEntry
from ledger.state_backend import StateBackend
from store.backend_guard import backend_call
from store.record_codec import decode_json_value

_LOGGER = get_logger(__name__)


class HistoryReader:
    """Replays the append-only modification history of a record."""

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend

    def history(self, name: str) -> list[HistoryEntry]:
        """Return all committed versions of a record.

        Deletions appear as entries with ``value`` None. A name that was
        never written has an empty history.

        Args:
            name: Record name.

        Returns:
            History entries in backend order.

        Raises:
            BackendUnavailableError: If the history scan fails.
        """
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError(
                f"Record name must be a non-empty string, got {name!r}.",
                operation="history",
            )
        entries: list[HistoryEntry] = []
        with backend_call("history", name):
            cursor = self._backend.get_history_for_key(name)
            with cursor:
                for modification in cursor:
                    entries.append(
                        HistoryEntry(
                            tx_id=modification.tx_id,
                            value=None if modification.is_delete else modification.value,
                            timestamp=modification.timestamp,
                            is_delete=modification.is_delete,
                        )
                    )
        _LOGGER.info("history_read", name=name, entry_count=len(entries))
        return entries


def render_history(entries: Sequence[HistoryEntry]) -> bytes:
    """Render history entries as a JSON array.

    Args:
        entries: History entries.

    Returns:
        UTF-8 JSON bytes of TxId/Value/Timestamp/IsDelete objects.
    """
    payload = [
        {
            "TxId": entry.tx_id,
            "Value": None if entry.value is None else decode_json_value(entry.value),
            "Timestamp": entry.timestamp.isoformat(),
            "IsDelete": entry.is_delete,
        }
        for entry in entries
    ]
    return json.dumps(payload, ensure_ascii=False).encode(TEXT_ENCODING)

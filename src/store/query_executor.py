"""Ad hoc predicate queries.

This module passes opaque query text to the backend and assembles
complete result lists. A failure at any point yields QueryError and
no partial result.
"""

from __future__ import annotations

import json
from typing import Sequence

from core.constants import TEXT_ENCODING
from core.errors import QueryError
from core.logging_config import get_logger
from core.types import QueryResult
from ledger.state_backend import BackendError, StateBackend
from store.record_codec import decode_json_value

_LOGGER = get_logger(__name__)


class QueryExecutor:
    """Runs backend-evaluated predicate queries."""

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend

    def execute(self, predicate: str) -> list[QueryResult]:
        """Run a predicate query to completion.

        Args:
            predicate: Backend-specific query text, passed through as is.

        Returns:
            Matching rows in backend order.

        Raises:
            QueryError: If the backend rejects the query or fails mid-iteration.
        """
        results: list[QueryResult] = []
        try:
            cursor = self._backend.get_query_result(predicate)
            with cursor:
                for row in cursor:
                    results.append(QueryResult(key=row.key, value=row.value))
        except BackendError as error:
            _LOGGER.warning("query_failed", partial_count=len(results), reason=str(error))
            raise QueryError(
                f"Query failed: {error}. Check the query syntax and backend availability.",
                operation="query",
            ) from error
        _LOGGER.info("query_executed", result_count=len(results))
        return results


def render_query_results(results: Sequence[QueryResult]) -> bytes:
    """Render query rows as a JSON array of Key/Record objects.

    Args:
        results: Query rows.

    Returns:
        UTF-8 JSON bytes.

    Raises:
        DecodingError: If a stored value is not valid JSON.
    """
    payload = [
        {"Key": result.key, "Record": decode_json_value(result.value)} for result in results
    ]
    return json.dumps(payload, ensure_ascii=False).encode(TEXT_ENCODING)

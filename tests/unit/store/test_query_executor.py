"""Unit tests for predicate query execution."""

from __future__ import annotations

import json

import pytest

from core.errors import QueryError
from core.types import QueryResult
from ledger.memory_backend import InMemoryLedger
from ledger.state_backend import BackendError, QueryRow, ResultCursor
from store.asset_store import AssetStore
from store.query_executor import QueryExecutor, render_query_results
from tests.ledger_helpers import committed


class _FailingCursor(ResultCursor[QueryRow]):
    """Cursor that yields one row and then fails."""

    def __init__(self) -> None:
        self.closed = False
        self._served = False

    def __next__(self) -> QueryRow:
        if self._served:
            raise BackendError("peer went away")
        self._served = True
        return QueryRow(key="k1", value=b"{}")

    def close(self) -> None:
        self.closed = True


class _FailingQueryBackend:
    def __init__(self) -> None:
        self.cursor = _FailingCursor()

    def get_query_result(self, query: str) -> ResultCursor[QueryRow]:
        return self.cursor


def _seed(ledger: InMemoryLedger) -> None:
    def work(backend) -> None:
        store = AssetStore(backend)
        store.create("rice-lot-1", "manil", {"quantity": 400})
        store.create("wheat-lot-2", "sita", {"quantity": 50})
        store.create("maize-lot-3", "manil", {"quantity": 10})

    committed(ledger, work)


def test_execute_returns_all_matching_rows(ledger: InMemoryLedger) -> None:
    """Every matching record should be returned."""
    _seed(ledger)

    results = committed(
        ledger,
        lambda backend: QueryExecutor(backend).execute('{"selector": {"owner": "manil"}}'),
    )

    assert [result.key for result in results] == ["maize-lot-3", "rice-lot-1"]


def test_execute_with_no_matches_returns_empty_list(ledger: InMemoryLedger) -> None:
    """A query matching nothing is not an error."""
    _seed(ledger)

    results = committed(
        ledger,
        lambda backend: QueryExecutor(backend).execute('{"selector": {"owner": "nobody"}}'),
    )

    assert results == []


def test_execute_rejects_malformed_query(ledger: InMemoryLedger) -> None:
    """Malformed predicates should raise QueryError."""
    with pytest.raises(QueryError):
        committed(ledger, lambda backend: QueryExecutor(backend).execute("{oops"))


def test_mid_iteration_failure_discards_partial_results() -> None:
    """A cursor failure should raise QueryError and close the cursor."""
    backend = _FailingQueryBackend()

    with pytest.raises(QueryError):
        QueryExecutor(backend).execute('{"selector": {}}')

    assert backend.cursor.closed


def test_render_query_results_wraps_key_and_record() -> None:
    """Rendered rows should carry Key and the decoded Record."""
    rendered = render_query_results([QueryResult(key="k1", value=b'{"owner": "manil"}')])

    assert json.loads(rendered) == [{"Key": "k1", "Record": {"owner": "manil"}}]

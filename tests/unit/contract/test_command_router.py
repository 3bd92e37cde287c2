"""Unit tests for ledger command routing."""

from __future__ import annotations

import json
import threading

import pytest

from contract.command_router import CommandRouter, failure_result, run_in_transaction
from core.errors import (
    AlreadyExistsError,
    DecodingError,
    PartialDeleteError,
)
from ledger.memory_backend import InMemoryLedger
from tests.ledger_helpers import committed, crop_create_args


@pytest.fixture
def router(ledger: InMemoryLedger) -> CommandRouter:
    """Provide a router over an empty ledger."""
    return CommandRouter(ledger)


def test_create_alias_then_read_returns_record(router: CommandRouter) -> None:
    """initCrop should create a record readable through readCrop."""
    created = router.invoke("initCrop", crop_create_args())
    read = router.invoke("readCrop", ["rice-lot-1"])

    assert created.ok and created.payload == b""
    assert json.loads(read.payload)["owner"] == "manil"


def test_unknown_command_is_bad_request(router: CommandRouter) -> None:
    """Unknown names should fail with status 400 and the command list."""
    result = router.invoke("plantCrop", ["x"])

    assert result.status == 400
    assert result.error_kind == "invalid_argument"
    assert "initCrop" in result.message


def test_wrong_argument_count_is_bad_request(router: CommandRouter) -> None:
    """Arity mismatches should fail with status 400."""
    assert router.invoke("read", []).status == 400


def test_duplicate_create_is_conflict(router: CommandRouter) -> None:
    """Creating an existing name should fail with status 409."""
    router.invoke("initCrop", crop_create_args())

    result = router.invoke("initCrop", crop_create_args())

    assert result.status == 409
    assert result.error_kind == "already_exists"


def test_read_of_missing_record_is_not_found(router: CommandRouter) -> None:
    """Missing records should fail with status 404."""
    result = router.invoke("readCrop", ["ghost"])

    assert result.status == 404
    assert result.error_kind == "not_found"


def test_fixed_flag_command_sets_one_flag(router: CommandRouter) -> None:
    """irrigationCrop should set only the irrigation flag."""
    router.invoke("initCrop", crop_create_args())

    result = router.invoke("irrigationCrop", ["rice-lot-1", "true"])
    flags = json.loads(result.payload)["flags"]

    assert flags["irrigation"] is True
    assert flags["harvesting"] is False


def test_generic_set_flag_rejects_bad_literal(router: CommandRouter) -> None:
    """Unparseable boolean literals should fail with status 400."""
    router.invoke("initCrop", crop_create_args())

    assert router.invoke("setFlag", ["rice-lot-1", "harvesting", "yes"]).status == 400


def test_crop_update_layout_preserves_quantity(router: CommandRouter) -> None:
    """The 16-position update should keep quantity and farm info."""
    router.invoke("initCrop", crop_create_args())
    update_args = crop_create_args()[:16]
    update_args[15] = "7"

    result = router.invoke("updateCrop", update_args)
    attributes = json.loads(result.payload)["attributes"]

    assert attributes["quantity"] == 400
    assert attributes["cghc"] == 7


def test_query_by_owner_alias_lists_records(router: CommandRouter) -> None:
    """queryCropsByOwner should list Key/Record pairs for the owner."""
    router.invoke("initCrop", crop_create_args(name="rice-lot-1"))
    router.invoke("initCrop", crop_create_args(name="wheat-lot-2", owner="sita"))

    result = router.invoke("queryCropsByOwner", ["manil"])

    assert [row["Key"] for row in json.loads(result.payload)] == ["rice-lot-1"]


def test_malformed_query_is_bad_request(router: CommandRouter) -> None:
    """Rejected predicates should fail with status 400."""
    result = router.invoke("queryCrop", ["{oops"])

    assert result.status == 400
    assert result.error_kind == "query_error"


def test_transfer_then_history_reports_every_version(router: CommandRouter) -> None:
    """History should include the create and transfer versions."""
    router.invoke("initCrop", crop_create_args())
    router.invoke("transferCrop", ["rice-lot-1", "Sita"])

    history = json.loads(router.invoke("historyOfCrop", ["rice-lot-1"]).payload)

    assert [entry["Value"]["owner"] for entry in history] == ["manil", "sita"]


def test_failed_command_leaves_no_writes(ledger: InMemoryLedger, router: CommandRouter) -> None:
    """A failing command should not commit anything."""
    router.invoke("updateCrop", ["ghost", "{}"])

    assert ledger.block_height == 0


def test_run_in_transaction_commits_partial_delete(ledger: InMemoryLedger) -> None:
    """Writes made before a partial delete should still commit."""

    def work(backend) -> None:
        backend.put_state("k1", b"v1")
        raise PartialDeleteError("index entry left behind", operation="delete", key="k1")

    with pytest.raises(PartialDeleteError):
        run_in_transaction(ledger, "delete", "k1", work)

    assert committed(ledger, lambda backend: backend.get_state("k1")) == b"v1"


def test_run_in_transaction_discards_other_failures(ledger: InMemoryLedger) -> None:
    """Any other error should discard buffered writes."""

    def work(backend) -> None:
        backend.put_state("k1", b"v1")
        raise AlreadyExistsError("taken", operation="create", key="k1")

    with pytest.raises(AlreadyExistsError):
        run_in_transaction(ledger, "create", "k1", work)

    assert ledger.block_height == 0


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (DecodingError("bad bytes"), 500),
        (PartialDeleteError("half done"), 500),
        (AlreadyExistsError("taken"), 409),
    ],
)
def test_failure_result_maps_error_kinds_to_status(error, status: int) -> None:
    """Each error kind should map onto its status code."""
    result = failure_result(error)

    assert result.status == status
    assert result.error_kind == error.kind
    assert not result.ok


def test_ledger_timeout_is_unavailable() -> None:
    """A ledger lock that cannot be acquired should fail with status 503."""
    ledger = InMemoryLedger(call_timeout_seconds=0.01)
    router = CommandRouter(ledger)
    holder_ready = threading.Event()
    release = threading.Event()

    def hold_lock() -> None:
        with ledger.locked():
            holder_ready.set()
            release.wait(timeout=5)

    holder = threading.Thread(target=hold_lock)
    holder.start()
    try:
        holder_ready.wait(timeout=5)
        result = router.invoke("initCrop", crop_create_args())
    finally:
        release.set()
        holder.join()

    assert result.status == 503
    assert result.error_kind == "backend_unavailable"
    assert ledger.block_height == 0

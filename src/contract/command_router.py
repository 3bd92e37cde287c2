"""Command routing for ledger invocations.

This module maps command names onto store, query, and history handlers.
Each invocation runs inside one ledger transaction and yields a
structured CommandResult instead of raising.
"""

from __future__ import annotations

from functools import partial
from typing import Callable, Sequence, TypeVar

from contract.crop_args import (
    CROP_FLAG_NAMES,
    parse_bool,
    parse_create_args,
    parse_update_args,
)
from core.constants import (
    STATUS_BAD_REQUEST,
    STATUS_CONFLICT,
    STATUS_INTERNAL_ERROR,
    STATUS_NOT_FOUND,
    STATUS_OK,
    STATUS_UNAVAILABLE,
)
from core.errors import (
    AlreadyExistsError,
    BackendUnavailableError,
    ConflictError,
    CropLedgerError,
    EncodingError,
    InvalidArgumentError,
    NotFoundError,
    PartialDeleteError,
    QueryError,
)
from core.logging_config import get_logger
from core.types import CommandResult, QueryResult
from ledger.state_backend import Ledger, StateBackend
from store.asset_store import AssetStore
from store.backend_guard import backend_call
from store.history_reader import HistoryReader, render_history
from store.query_executor import QueryExecutor, render_query_results
from store.record_codec import encode_record

_LOGGER = get_logger(__name__)

ResultT = TypeVar("ResultT")
Handler = Callable[[StateBackend, Sequence[str]], bytes]

COMMAND_ALIASES = {
    "initCrop": "create",
    "readCrop": "read",
    "updateCrop": "update",
    "deleteCrop": "delete",
    "transferCrop": "transfer",
    "queryCrop": "query",
    "queryCropsByOwner": "queryByOwner",
    "historyOfCrop": "history",
}
FLAG_COMMANDS = dict(
    zip(
        ("irrigationCrop", "addFertilizerCrop", "applyPesticideCrop", "harvestCrop"),
        CROP_FLAG_NAMES,
    )
)
_ERROR_STATUSES: tuple[tuple[type[CropLedgerError], int], ...] = (
    (InvalidArgumentError, STATUS_BAD_REQUEST),
    (EncodingError, STATUS_BAD_REQUEST),
    (QueryError, STATUS_BAD_REQUEST),
    (NotFoundError, STATUS_NOT_FOUND),
    (AlreadyExistsError, STATUS_CONFLICT),
    (ConflictError, STATUS_CONFLICT),
    (BackendUnavailableError, STATUS_UNAVAILABLE),
)


class CommandRouter:
    """Dispatches named commands with positional string arguments."""

    def __init__(self, ledger: Ledger) -> None:
        """Build the dispatch table once.

        Args:
            ledger: Ledger providing one transaction per invocation.
        """
        self._ledger = ledger
        self._handlers = build_handler_table()

    def commands(self) -> tuple[str, ...]:
        """Return supported command names in sorted order."""
        return tuple(sorted(self._handlers))

    def invoke(self, command: str, args: Sequence[str]) -> CommandResult:
        """Run one command and report its outcome.

        Args:
            command: Command name or alias.
            args: Positional string arguments.

        Returns:
            Success payload or structured failure.
        """
        arguments = list(args)
        try:
            handler = self._handlers.get(command)
            if handler is None:
                raise InvalidArgumentError(
                    f"Unknown command '{command}'. Supported commands: "
                    f"{', '.join(self.commands())}.",
                    operation=command,
                )
            key = arguments[0] if arguments else ""
            payload = run_in_transaction(
                self._ledger,
                command,
                key,
                lambda backend: handler(backend, arguments),
            )
        except CropLedgerError as error:
            _LOGGER.warning(
                "command_failed",
                command=command,
                error_kind=error.kind,
                key=error.key,
                message=str(error),
            )
            return failure_result(error)
        _LOGGER.info("command_succeeded", command=command, payload_bytes=len(payload))
        return CommandResult(status=STATUS_OK, payload=payload)


def run_in_transaction(
    ledger: Ledger,
    operation: str,
    key: str,
    work: Callable[[StateBackend], ResultT],
) -> ResultT:
    """Run work inside one ledger transaction.

    A partial delete still commits so the primary deletion stands; its
    error is raised after the commit.

    Args:
        ledger: Ledger to open the transaction on.
        operation: Operation name for error context.
        key: Primary key for error context.
        work: Callable receiving the transactional backend.

    Returns:
        Result of work.

    Raises:
        CropLedgerError: If work fails or the commit is rejected.
    """
    degraded: PartialDeleteError | None = None
    with backend_call(operation, key):
        with ledger.transaction() as backend:
            try:
                result = work(backend)
            except PartialDeleteError as error:
                degraded = error
    if degraded is not None:
        raise degraded
    return result


def failure_result(error: CropLedgerError) -> CommandResult:
    """Convert an error into a failed CommandResult."""
    status = STATUS_INTERNAL_ERROR
    for error_type, error_status in _ERROR_STATUSES:
        if isinstance(error, error_type):
            status = error_status
            break
    return CommandResult(status=status, message=str(error), error_kind=error.kind)


def build_handler_table() -> dict[str, Handler]:
    """Build the command name to handler mapping."""
    table: dict[str, Handler] = {
        "create": _run_create,
        "read": _run_read,
        "update": _run_update,
        "delete": _run_delete,
        "setFlag": _run_set_flag,
        "transfer": _run_transfer,
        "query": _run_query,
        "queryByOwner": _run_query_by_owner,
        "history": _run_history,
    }
    for alias, target in COMMAND_ALIASES.items():
        table[alias] = table[target]
    for command, flag_name in FLAG_COMMANDS.items():
        table[command] = partial(_run_fixed_flag, flag_name)
    return table


def _run_create(backend: StateBackend, args: Sequence[str]) -> bytes:
    parsed = parse_create_args(args)
    AssetStore(backend).create(parsed.name, parsed.owner, parsed.attributes, parsed.flags)
    return b""


def _run_read(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "read", "name")
    return AssetStore(backend).read(args[0])


def _run_update(backend: StateBackend, args: Sequence[str]) -> bytes:
    parsed = parse_update_args(args)
    record = AssetStore(backend).update(
        parsed.name,
        parsed.attributes,
        flags=parsed.flags,
        merge=parsed.merge,
    )
    return encode_record(record)


def _run_delete(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "delete", "name")
    AssetStore(backend).delete(args[0])
    return b""


def _run_set_flag(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "setFlag", "name", "flagName", "value")
    value = parse_bool(args[2], args[1])
    return encode_record(AssetStore(backend).set_flag(args[0], args[1], value))


def _run_fixed_flag(flag_name: str, backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, flag_name, "name", "value")
    value = parse_bool(args[1], flag_name)
    return encode_record(AssetStore(backend).set_flag(args[0], flag_name, value))


def _run_transfer(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "transfer", "name", "newOwner")
    return encode_record(AssetStore(backend).transfer(args[0], args[1]))


def _run_query(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "query", "queryString")
    return render_query_results(QueryExecutor(backend).execute(args[0]))


def _run_query_by_owner(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "queryByOwner", "owner")
    records = AssetStore(backend).list_by_owner(args[0])
    results = [QueryResult(key=record.name, value=encode_record(record)) for record in records]
    return render_query_results(results)


def _run_history(backend: StateBackend, args: Sequence[str]) -> bytes:
    _require_arg_count(args, "history", "name")
    return render_history(HistoryReader(backend).history(args[0]))


def _require_arg_count(args: Sequence[str], command: str, *names: str) -> None:
    if len(args) != len(names):
        raise InvalidArgumentError(
            f"Incorrect number of arguments for {command}. Expecting {len(names)} "
            f"({', '.join(names)}), got {len(args)}.",
            operation=command,
        )

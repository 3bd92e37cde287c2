"""Python SDK for ledger record operations.

This module exposes typed record operations and raw command invocation
backed by a configured ledger. Every call runs in its own transaction.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from contract.command_router import CommandRouter, run_in_transaction
from core.config import LedgerConfig
from core.types import CommandResult, HistoryEntry, QueryResult, Record
from ledger import open_ledger
from ledger.state_backend import Ledger
from store.asset_store import AssetStore
from store.history_reader import HistoryReader
from store.query_executor import QueryExecutor


class CropLedgerClient:
    """Primary SDK entry point for record workflows."""

    def __init__(self, config: LedgerConfig | None = None, ledger: Ledger | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            ledger: Optional ledger; opened from config when omitted.
        """
        self._config = config or LedgerConfig.from_env()
        self._ledger = ledger or open_ledger(self._config)
        self._router = CommandRouter(self._ledger)

    @property
    def ledger(self) -> Ledger:
        """Ledger backing this client."""
        return self._ledger

    def commands(self) -> tuple[str, ...]:
        """Return supported command names."""
        return self._router.commands()

    def invoke(self, command: str, args: Sequence[str]) -> CommandResult:
        """Invoke a named command with positional string arguments."""
        return self._router.invoke(command, args)

    def create(
        self,
        name: str,
        owner: str,
        attributes: Mapping[str, Any],
        flags: Mapping[str, bool] | None = None,
    ) -> Record:
        """Create a record.

        Raises:
            AlreadyExistsError: If the name is already live.
        """
        return run_in_transaction(
            self._ledger,
            "create",
            name,
            lambda backend: AssetStore(backend).create(name, owner, attributes, flags),
        )

    def get(self, name: str) -> Record:
        """Return a decoded record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        return run_in_transaction(
            self._ledger, "get", name, lambda backend: AssetStore(backend).get(name)
        )

    def read(self, name: str) -> bytes:
        """Return the stored bytes of a record."""
        return run_in_transaction(
            self._ledger, "read", name, lambda backend: AssetStore(backend).read(name)
        )

    def update(
        self,
        name: str,
        attributes: Mapping[str, Any],
        flags: Mapping[str, bool] | None = None,
        merge: bool = False,
    ) -> Record:
        """Replace or merge record attributes."""
        return run_in_transaction(
            self._ledger,
            "update",
            name,
            lambda backend: AssetStore(backend).update(name, attributes, flags, merge),
        )

    def set_flag(self, name: str, flag_name: str, value: bool) -> Record:
        """Set one named flag on a record."""
        return run_in_transaction(
            self._ledger,
            "set_flag",
            name,
            lambda backend: AssetStore(backend).set_flag(name, flag_name, value),
        )

    def transfer(self, name: str, new_owner: str) -> Record:
        """Move a record to a new owner."""
        return run_in_transaction(
            self._ledger,
            "transfer",
            name,
            lambda backend: AssetStore(backend).transfer(name, new_owner),
        )

    def delete(self, name: str) -> None:
        """Delete a record and its index entry.

        Raises:
            NotFoundError: If the record does not exist.
            PartialDeleteError: If the record is gone but the index entry stayed.
        """
        run_in_transaction(
            self._ledger, "delete", name, lambda backend: AssetStore(backend).delete(name)
        )

    def list_by_owner(self, owner: str) -> list[Record]:
        """Return records indexed under an owner."""
        return run_in_transaction(
            self._ledger,
            "list_by_owner",
            owner,
            lambda backend: AssetStore(backend).list_by_owner(owner),
        )

    def query(self, predicate: str) -> list[QueryResult]:
        """Run a backend predicate query."""
        return run_in_transaction(
            self._ledger, "query", "", lambda backend: QueryExecutor(backend).execute(predicate)
        )

    def history(self, name: str) -> list[HistoryEntry]:
        """Return every committed version of a record."""
        return run_in_transaction(
            self._ledger, "history", name, lambda backend: HistoryReader(backend).history(name)
        )

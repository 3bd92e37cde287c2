"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from ledger.memory_backend import InMemoryLedger


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Provide an empty in-memory ledger."""
    return InMemoryLedger(call_timeout_seconds=0.5)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear cropledger environment overrides for each test."""
    for name in (
        "CROPLEDGER_DATA_ROOT",
        "CROPLEDGER_BACKEND",
        "CROPLEDGER_CALL_TIMEOUT_SECONDS",
        "CROPLEDGER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

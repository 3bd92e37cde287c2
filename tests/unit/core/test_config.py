"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import LedgerConfig
from core.errors import ConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("CROPLEDGER_DATA_ROOT", "./.tmp-ledger")

    config = LedgerConfig.from_env()

    assert config.data_root.name == ".tmp-ledger"


def test_from_env_uses_defaults() -> None:
    """Config should default to the file backend at INFO level."""
    config = LedgerConfig.from_env()

    assert (config.backend_kind, config.call_timeout_seconds, config.log_level) == (
        "file",
        5.0,
        "INFO",
    )


def test_from_env_normalizes_backend_and_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Backend kind and log level should be case-insensitive."""
    monkeypatch.setenv("CROPLEDGER_BACKEND", "Memory")
    monkeypatch.setenv("CROPLEDGER_LOG_LEVEL", "debug")

    config = LedgerConfig.from_env()

    assert (config.backend_kind, config.log_level) == ("memory", "DEBUG")


def test_from_env_raises_for_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for an unsupported backend kind."""
    monkeypatch.setenv("CROPLEDGER_BACKEND", "couchdb")

    with pytest.raises(ConfigError):
        LedgerConfig.from_env()


@pytest.mark.parametrize("raw_value", ["soon", "0", "-1", "nan"])
def test_from_env_raises_for_invalid_timeout(
    monkeypatch: pytest.MonkeyPatch, raw_value: str
) -> None:
    """Config should fail for non-positive or non-numeric timeouts."""
    monkeypatch.setenv("CROPLEDGER_CALL_TIMEOUT_SECONDS", raw_value)

    with pytest.raises(ConfigError):
        LedgerConfig.from_env()


def test_from_env_raises_for_invalid_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for an unknown log level."""
    monkeypatch.setenv("CROPLEDGER_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigError):
        LedgerConfig.from_env()

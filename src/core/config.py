"""Runtime configuration model for cropledger.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BACKEND_KIND,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_DATA_ROOT,
    DEFAULT_LOG_LEVEL,
    SUPPORTED_BACKEND_KINDS,
    SUPPORTED_LOG_LEVELS,
)
from core.errors import ConfigError


@dataclass(frozen=True)
class LedgerConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for file-backed ledger state.
        backend_kind: State backend implementation, ``file`` or ``memory``.
        call_timeout_seconds: Upper bound on waiting for a backend call.
        log_level: Minimum level emitted by structured logging.
    """

    data_root: Path
    backend_kind: str
    call_timeout_seconds: float
    log_level: str

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("CROPLEDGER_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        backend_kind = _parse_backend_kind(os.getenv("CROPLEDGER_BACKEND", DEFAULT_BACKEND_KIND))
        call_timeout_seconds = _parse_call_timeout(
            os.getenv("CROPLEDGER_CALL_TIMEOUT_SECONDS", str(DEFAULT_CALL_TIMEOUT_SECONDS))
        )
        log_level = _parse_log_level(os.getenv("CROPLEDGER_LOG_LEVEL", DEFAULT_LOG_LEVEL))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            backend_kind=backend_kind,
            call_timeout_seconds=call_timeout_seconds,
            log_level=log_level,
        )


def _parse_backend_kind(raw_value: str) -> str:
    """Validate the backend kind environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Normalized backend kind.

    Raises:
        ConfigError: If the backend kind is not supported.
    """
    backend_kind = raw_value.strip().lower()
    if backend_kind not in SUPPORTED_BACKEND_KINDS:
        raise ConfigError(
            f"Invalid CROPLEDGER_BACKEND value: '{raw_value}'. "
            f"Set CROPLEDGER_BACKEND to one of: {', '.join(SUPPORTED_BACKEND_KINDS)}."
        )
    return backend_kind


def _parse_call_timeout(raw_value: str) -> float:
    """Parse the backend call timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive timeout in seconds.

    Raises:
        ConfigError: If value is not a positive finite number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid CROPLEDGER_CALL_TIMEOUT_SECONDS value: "
            f"expected number, got '{raw_value}'. "
            "Set CROPLEDGER_CALL_TIMEOUT_SECONDS to a positive number of seconds."
        ) from error
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigError(
            "Invalid CROPLEDGER_CALL_TIMEOUT_SECONDS value: "
            f"expected positive number, got '{raw_value}'."
        )
    return timeout


def _parse_log_level(raw_value: str) -> str:
    """Validate the log level environment value."""
    log_level = raw_value.strip().upper()
    if log_level not in SUPPORTED_LOG_LEVELS:
        raise ConfigError(
            f"Invalid CROPLEDGER_LOG_LEVEL value: '{raw_value}'. "
            f"Set CROPLEDGER_LOG_LEVEL to one of: {', '.join(SUPPORTED_LOG_LEVELS)}."
        )
    return log_level

"""Core constants used across cropledger modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".cropledger")
LEDGER_FILE_NAME = "ledger.json"
BACKEND_KIND_FILE = "file"
BACKEND_KIND_MEMORY = "memory"
DEFAULT_BACKEND_KIND = BACKEND_KIND_FILE
SUPPORTED_BACKEND_KINDS = (BACKEND_KIND_FILE, BACKEND_KIND_MEMORY)
DEFAULT_CALL_TIMEOUT_SECONDS = 5.0
DEFAULT_LOG_LEVEL = "INFO"
SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
TEXT_ENCODING = "utf-8"
STATUS_OK = 200
STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500
STATUS_UNAVAILABLE = 503

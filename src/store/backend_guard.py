"""Backend error translation.

This module wraps state backend exceptions into store errors that carry
the failing operation and key. No call is retried here.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from core.errors import (
    BackendUnavailableError,
    ConflictError,
    InvalidArgumentError,
    QueryError,
)
from ledger.state_backend import (
    BackendConflict,
    BackendError,
    BackendQueryRejected,
    BackendTimeout,
    InvalidCompositeKey,
)


@contextmanager
def backend_call(operation: str, key: str) -> Iterator[None]:
    """Translate backend exceptions raised inside the block.

    Args:
        operation: Store operation name used in error context.
        key: Record name or ledger key used in error context.

    Raises:
        ConflictError: On a concurrent-write conflict.
        BackendUnavailableError: On timeouts and transport failures.
        QueryError: When the backend rejects a query.
        InvalidArgumentError: When key components are not encodable.
    """
    try:
        yield
    except BackendConflict as error:
        raise ConflictError(
            f"{operation} on '{key}' conflicted with a concurrent write: {error} "
            "Retry against the latest committed state.",
            operation=operation,
            key=key,
        ) from error
    except BackendTimeout as error:
        raise BackendUnavailableError(
            f"{operation} on '{key}' timed out: {error}",
            operation=operation,
            key=key,
        ) from error
    except BackendQueryRejected as error:
        raise QueryError(
            f"{operation} rejected by backend: {error}",
            operation=operation,
            key=key,
        ) from error
    except InvalidCompositeKey as error:
        raise InvalidArgumentError(
            f"{operation} on '{key}' has an invalid key component: {error}",
            operation=operation,
            key=key,
        ) from error
    except BackendError as error:
        raise BackendUnavailableError(
            f"{operation} on '{key}' failed in the backend: {error}",
            operation=operation,
            key=key,
        ) from error

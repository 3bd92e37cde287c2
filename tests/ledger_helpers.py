"""Shared ledger helpers for tests."""

from __future__ import annotations

from typing import Callable, TypeVar

from ledger.state_backend import Ledger, StateBackend

ResultT = TypeVar("ResultT")


def committed(ledger: Ledger, work: Callable[[StateBackend], ResultT]) -> ResultT:
    """Run work in one transaction and commit it.

    Args:
        ledger: Ledger under test.
        work: Callable receiving the transactional backend.

    Returns:
        Result of work.
    """
    with ledger.transaction() as backend:
        return work(backend)


def crop_create_args(
    name: str = "rice-lot-1",
    owner: str = "manil",
    quantity: str = "400",
    soil_type: str = "Clay",
) -> list[str]:
    """Build a 20-position crop create argument list.

    Args:
        name: Crop name.
        owner: Crop owner.
        quantity: Quantity text.
        soil_type: Soil type text.

    Returns:
        Positional string arguments.
    """
    return [
        name,
        owner,
        quantity,
        "27.7172",
        "85.3240",
        soil_type,
        "24.5",
        "101325",
        "0.62",
        "0.01",
        "0.35",
        "6",
        "2.5",
        "1.2",
        "field.png",
        "3",
        "false",
        "false",
        "false",
        "false",
    ]

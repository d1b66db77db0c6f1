"""Pytest configuration and shared fixtures.

Settings are read from ``LEDGER_*`` environment variables (and the CLI loads
a ``.env`` from the working directory), so every test runs with those
variables cleared and the working directory pointed at its own temporary
directory to keep results independent of the developer's shell.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_engine.models import Cadence, RecurringObligation, TransactionRecord


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("LEDGER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def make_record() -> Callable[..., TransactionRecord]:
    """Factory for imported records: ``make_record("2024-01-05", "-50.00")``."""

    counter = iter(range(1, 10_000))

    def _make(day: str, amount: str, description: str = "Coffee", **kw) -> TransactionRecord:
        d = date.fromisoformat(day)
        kw.setdefault("id", f"{d:%Y%m%d}-{next(counter):04d}-test")
        return TransactionRecord(date=d, description=description, amount=Decimal(amount), **kw)

    return _make


@pytest.fixture
def rent() -> RecurringObligation:
    return RecurringObligation(
        id="rent",
        description="Rent",
        amount=Decimal("-1200.00"),
        cadence=Cadence("monthly", day_of_month=1),
        next_due=date(2024, 2, 1),
        category="Housing",
    )

import threading
import time
from datetime import date
from decimal import Decimal

import pytest

from ledger_engine import batch
from ledger_engine.batch import AccountJob, ordered_map, project_accounts
from ledger_engine.settings import ProjectionSettings


def test_project_accounts_preserves_input_order(make_record, rent):
    jobs = [
        AccountJob(
            account=f"acct-{i}",
            records=[make_record("2024-01-10", f"-{i}.00")],
            obligations=[rent] if i % 2 else [],
            anchor=Decimal(100 * i),
        )
        for i in range(1, 7)
    ]
    out = project_accounts(jobs, today=date(2024, 1, 15), concurrency=3)

    assert [account for account, _ in out] == [f"acct-{i}" for i in range(1, 7)]
    for i, (_, result) in enumerate(out, start=1):
        assert result.entries[0].balance == Decimal(100 * i)
        assert len(result.entries) == (3 if i % 2 else 1)


def test_ordered_map_bounds_concurrency():
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(n: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1
        return n * n

    assert ordered_map(range(10), work, concurrency=2) == [n * n for n in range(10)]
    assert peak <= 2


def test_ordered_map_fails_fast():
    def work(n: int) -> int:
        if n == 3:
            raise RuntimeError("boom")
        return n

    with pytest.raises(RuntimeError, match="boom"):
        ordered_map(range(6), work, concurrency=2)


def test_ordered_map_collects_errors_when_not_failing_fast():
    def work(n: int) -> int:
        if n % 2:
            raise ValueError(str(n))
        return n

    with pytest.raises(ExceptionGroup) as exc_info:
        ordered_map(range(5), work, concurrency=2, stop_on_error=False)
    assert sorted(str(e) for e in exc_info.value.exceptions) == ["1", "3"]


@pytest.mark.parametrize("concurrency", [0, -1, 1.5])
def test_ordered_map_rejects_bad_concurrency(concurrency):
    with pytest.raises(ValueError):
        ordered_map([1], lambda n: n, concurrency=concurrency)


def test_project_accounts_defaults_from_settings(monkeypatch, make_record, rent):
    seen: list[int] = []
    real = batch.ordered_map

    def spy(items, fn, *, concurrency, stop_on_error=True):
        seen.append(concurrency)
        return real(items, fn, concurrency=concurrency, stop_on_error=stop_on_error)

    monkeypatch.setattr(batch, "ordered_map", spy)
    job = AccountJob(
        account="chk",
        records=[make_record("2024-01-10", "-1.00")],
        obligations=[rent],
        anchor=Decimal("100"),
    )
    settings = ProjectionSettings(horizon_days=20, max_workers=3)

    [(_, short)] = project_accounts([job], today=date(2024, 1, 15), settings=settings)
    [(_, wide)] = project_accounts(
        [job], today=date(2024, 1, 15), settings=settings, horizon_days=60, concurrency=2
    )

    assert seen == [3, 2]
    assert len(short.entries) == 2
    assert len(wide.entries) == 3

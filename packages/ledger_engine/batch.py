"""Recompute many accounts concurrently.

Per-account projections share no mutable state, so they can run on a
bounded thread pool. Results come back in input order. By default the first
failure cancels work that has not started yet and propagates; with
``stop_on_error=False`` all jobs run and failures are raised together as an
``ExceptionGroup``.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TypeVar

from .logging_setup import get_logger
from .models import ProjectionResult, RecurringObligation, TransactionRecord
from .occurrences import DismissalSet
from .projection import project_account
from .settings import ProjectionSettings

_logger = get_logger("ledger_engine.batch")

InT = TypeVar("InT")
OutT = TypeVar("OutT")


@dataclass(frozen=True, slots=True)
class AccountJob:
    """Everything needed to project one account."""

    account: str
    records: Sequence[TransactionRecord]
    obligations: Sequence[RecurringObligation]
    anchor: Decimal
    dismissals: DismissalSet = field(default_factory=DismissalSet)
    hidden: Collection[str] = frozenset()


def ordered_map(
    items: Iterable[InT],
    fn: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Apply ``fn`` to ``items`` with at most ``concurrency`` calls in flight."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    pending = enumerate(items)
    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    index_of: dict[Future, int] = {}

    with ThreadPoolExecutor(max_workers=concurrency) as pool:

        def submit_next() -> Future | None:
            for idx, item in pending:
                fut = pool.submit(fn, item)
                index_of[fut] = idx
                return fut
            return None

        active = {f for _ in range(concurrency) if (f := submit_next()) is not None}
        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = index_of.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as exc:
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(exc)
                if (nxt := submit_next()) is not None:
                    active.add(nxt)

    if errors:
        raise ExceptionGroup("one or more jobs failed", errors)
    return [results[i] for i in sorted(results)]


def project_accounts(
    jobs: Iterable[AccountJob],
    *,
    today: date,
    horizon_days: int | None = None,
    concurrency: int | None = None,
    stop_on_error: bool = True,
    settings: ProjectionSettings | None = None,
) -> list[tuple[str, ProjectionResult]]:
    """Project each job's account; returns ``(account, result)`` in input order.

    ``horizon_days`` and ``concurrency`` default to ``settings.horizon_days``
    and ``settings.max_workers``.
    """

    settings = settings or ProjectionSettings()
    horizon = settings.horizon_days if horizon_days is None else horizon_days
    workers = settings.max_workers if concurrency is None else concurrency

    def run(job: AccountJob) -> tuple[str, ProjectionResult]:
        _logger.debug("Projecting account %s", job.account)
        result = project_account(
            job.records,
            job.obligations,
            anchor=job.anchor,
            today=today,
            horizon_days=horizon,
            dismissals=job.dismissals,
            hidden=job.hidden,
        )
        return job.account, result

    out = ordered_map(jobs, run, concurrency=workers, stop_on_error=stop_on_error)
    _logger.info("Projected %d account(s)", len(out))
    return out


__all__ = ["AccountJob", "ordered_map", "project_accounts"]

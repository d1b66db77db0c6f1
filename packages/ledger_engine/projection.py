"""Anchor-based running balances over actual and projected entries.

The caller supplies the trusted balance as of the most recent imported
record. Balances before it are recovered by walking backward, balances
after it (including projected occurrences) by walking forward. Every
additive step is quantized to cents so the chain stays continuous.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal

from .cadence import occurrence_on
from .identifiers import occurrence_id
from .logging_setup import get_logger
from .models import (
    PROJECTED_MARKER,
    BalancedEntry,
    LedgerEntry,
    ProjectedOccurrence,
    ProjectionResult,
    RecurringObligation,
    TransactionRecord,
    to_cents,
)
from .occurrences import DismissalSet

_logger = get_logger("ledger_engine.projection")

DEFAULT_HORIZON_DAYS = 60


def generate_occurrences(
    obligations: Iterable[RecurringObligation],
    *,
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    dismissals: DismissalSet | None = None,
    hidden: Collection[str] = frozenset(),
) -> list[ProjectedOccurrence]:
    """Expand active obligations into occurrences up to ``today + horizon_days``.

    Occurrences start at each obligation's ``next_due`` (an overdue slot is
    still generated). Slots suppressed by ``dismissals`` are skipped; ids in
    ``hidden`` are generated with ``visible=False``.
    """

    dismissals = dismissals or DismissalSet()
    end = today + timedelta(days=horizon_days)
    out: list[ProjectedOccurrence] = []
    for ob in obligations:
        if not ob.active:
            continue
        k = 0
        while (day := occurrence_on(ob.next_due, ob.cadence, k)) <= end:
            k += 1
            oid = occurrence_id(ob.id, day)
            if dismissals.suppresses(oid):
                continue
            out.append(
                ProjectedOccurrence(
                    id=oid,
                    obligation_id=ob.id,
                    date=day,
                    description=ob.description + PROJECTED_MARKER,
                    amount=to_cents(ob.amount),
                    category=ob.category,
                    visible=oid not in hidden,
                )
            )
    return out


def sort_key(entry: LedgerEntry) -> tuple[date, int, str]:
    """Date first, actual before projected on the same day, then id.

    A manual record linked to an obligation keeps the position of the slot it
    was materialized from, so materializing never reorders a day.
    """

    if entry.manual and entry.obligation_id is not None:
        return (entry.date, 1, occurrence_id(entry.obligation_id, entry.date))
    return (entry.date, 1 if entry.projected else 0, entry.id)


def order_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return sorted(entries, key=sort_key)


def find_anchor_index(entries: Sequence[LedgerEntry]) -> int | None:
    """Index of the last imported actual record (not projected, not manual)."""

    for i in range(len(entries) - 1, -1, -1):
        e = entries[i]
        if not e.projected and not e.manual:
            return i
    return None


def _visible_amount(entry: LedgerEntry) -> Decimal:
    return entry.amount if entry.visible else Decimal("0")


def compute_balances(
    entries: Sequence[LedgerEntry], anchor: Decimal
) -> tuple[list[BalancedEntry], str | None]:
    """Assign running balances to already-ordered ``entries``.

    Returns the balanced entries and the id of the anchor record (``None``
    when there is no imported record, in which case ``anchor`` seeds the
    walk as the opening balance).
    """

    anchor = to_cents(anchor)
    idx = find_anchor_index(entries)
    balance = anchor
    if idx is not None:
        for e in reversed(entries[: idx + 1]):
            balance = to_cents(balance - _visible_amount(e))

    out: list[BalancedEntry] = []
    for e in entries:
        balance = to_cents(balance + _visible_amount(e))
        out.append(BalancedEntry(entry=e, balance=balance))
    return out, (entries[idx].id if idx is not None else None)


def project_account(
    records: Iterable[TransactionRecord],
    obligations: Iterable[RecurringObligation],
    *,
    anchor: Decimal,
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    dismissals: DismissalSet | None = None,
    hidden: Collection[str] = frozenset(),
) -> ProjectionResult:
    """Merge one account's records with projected occurrences and balance them.

    Parameters
    ----------
    records:
        Actual records (imported and manual) for the account.
    obligations:
        The account's recurring obligations; inactive ones are skipped.
    anchor:
        Trusted balance as of the most recent imported record.
    today:
        Reference date for the projection horizon.

    Notes
    -----
    The function is total. Data-quality conditions (e.g. imported records
    dated after ``today``) are returned as warnings.
    """

    record_list = list(records)
    warnings: list[str] = []
    future = [r for r in record_list if not r.manual and r.date > today]
    if future:
        msg = f"{len(future)} imported record(s) dated after {today.isoformat()}"
        _logger.warning(msg)
        warnings.append(msg)

    occurrences = generate_occurrences(
        obligations,
        today=today,
        horizon_days=horizon_days,
        dismissals=dismissals,
        hidden=hidden,
    )
    ordered = order_entries([*record_list, *occurrences])
    balanced, anchor_id = compute_balances(ordered, anchor)
    _logger.debug(
        "Projected %d records + %d occurrences (anchor %s)",
        len(record_list),
        len(occurrences),
        anchor_id,
    )
    return ProjectionResult(entries=tuple(balanced), anchor_id=anchor_id, warnings=tuple(warnings))


__all__ = [
    "DEFAULT_HORIZON_DAYS",
    "compute_balances",
    "find_anchor_index",
    "generate_occurrences",
    "order_entries",
    "project_account",
    "sort_key",
]

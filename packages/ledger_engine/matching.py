"""Link freshly imported records to the recurring obligations they settle.

Matching needs both an amount match (exact to the cent for fixed
obligations, within a percentage band for variable ones) and a loose
description match. A matched record inherits the obligation's id and
category; the caller also receives proposed next-due updates and, for
variable obligations, the amount variations worth confirming.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from .cadence import next_occurrence
from .logging_setup import get_logger
from .models import CENT, RecurringObligation, TransactionRecord, to_cents

_logger = get_logger("ledger_engine.matching")

_NON_WORD = re.compile(r"[^a-z0-9]")
MIN_WORD_LENGTH = 3
WORD_OVERLAP_RATIO = 0.6
WORD_OVERLAP_COUNT = 3


@dataclass(frozen=True, slots=True)
class ObligationUpdate:
    """Proposed bookkeeping after an obligation was seen in an import."""

    obligation_id: str
    matched_record_id: str
    matched_amount: Decimal
    matched_date: date
    proposed_next_due: date


@dataclass(frozen=True, slots=True)
class AmountVariation:
    obligation_id: str
    record_id: str
    description: str
    expected: Decimal
    actual: Decimal

    @property
    def difference(self) -> Decimal:
        return to_cents(self.actual - self.expected)

    @property
    def percent_diff(self) -> Decimal:
        if self.expected == 0:
            return Decimal("0")
        return (abs(self.difference) / abs(self.expected) * 100).quantize(Decimal("0.1"))


@dataclass(frozen=True, slots=True)
class LinkResult:
    records: tuple[TransactionRecord, ...]
    updates: tuple[ObligationUpdate, ...] = ()
    variations: tuple[AmountVariation, ...] = ()


def amount_matches(obligation: RecurringObligation, amount: Decimal) -> bool:
    diff = abs(obligation.amount - amount)
    if obligation.amount_type == "fixed":
        return diff < CENT
    return diff <= abs(obligation.amount) * obligation.tolerance_pct / 100


def _significant_words(text: str) -> set[str]:
    words = (_NON_WORD.sub("", w) for w in text.split())
    return {w for w in words if len(w) >= MIN_WORD_LENGTH}


def description_matches(a: str, b: str) -> bool:
    """Loose, case-insensitive description comparison.

    True on equality, substring containment either way, or when the two
    share at least 60% of their significant words (3+ characters) or at
    least three of them outright.
    """

    a, b = a.casefold().strip(), b.casefold().strip()
    if not a or not b:
        return False
    if a == b or a in b or b in a:
        return True
    wa, wb = _significant_words(a), _significant_words(b)
    total = max(len(wa), len(wb))
    if total == 0:
        return False
    common = len(wa & wb)
    return common / total >= WORD_OVERLAP_RATIO or common >= WORD_OVERLAP_COUNT


def find_obligation(
    record: TransactionRecord, obligations: Sequence[RecurringObligation]
) -> RecurringObligation | None:
    """First active obligation (same account when both are set) that matches."""

    for ob in obligations:
        if not ob.active:
            continue
        if ob.account is not None and record.account is not None and ob.account != record.account:
            continue
        if amount_matches(ob, record.amount) and description_matches(
            ob.description, record.description
        ):
            return ob
    return None


def link_to_obligations(
    records: Iterable[TransactionRecord], obligations: Iterable[RecurringObligation]
) -> LinkResult:
    """Attach obligation links to matching ``records``.

    Returns new record values (unmatched ones unchanged), one
    :class:`ObligationUpdate` per matched obligation based on its most
    recent matched record, and the variable-amount deviations.
    """

    obligations = list(obligations)
    linked: list[TransactionRecord] = []
    latest: dict[str, TransactionRecord] = {}
    variations: list[AmountVariation] = []
    by_id = {ob.id: ob for ob in obligations}

    for record in records:
        ob = find_obligation(record, obligations)
        if ob is None:
            linked.append(record)
            continue
        _logger.debug("Matched %r with obligation %r", record.description, ob.description)
        record = replace(record, obligation_id=ob.id, category=ob.category)
        linked.append(record)

        seen = latest.get(ob.id)
        if seen is None or record.date > seen.date:
            latest[ob.id] = record
        if ob.amount_type == "variable" and abs(record.amount - ob.amount) >= CENT:
            variations.append(
                AmountVariation(
                    obligation_id=ob.id,
                    record_id=record.id,
                    description=ob.description,
                    expected=ob.amount,
                    actual=record.amount,
                )
            )

    updates = tuple(
        ObligationUpdate(
            obligation_id=ob_id,
            matched_record_id=rec.id,
            matched_amount=rec.amount,
            matched_date=rec.date,
            proposed_next_due=next_occurrence(by_id[ob_id].next_due, by_id[ob_id].cadence),
        )
        for ob_id, rec in latest.items()
    )
    if updates:
        _logger.info("Linked records to %d obligation(s)", len(updates))
    return LinkResult(records=tuple(linked), updates=updates, variations=tuple(variations))


def apply_update(obligation: RecurringObligation, update: ObligationUpdate) -> RecurringObligation:
    """Accept a proposed update: advance ``next_due`` (fixed amounts unchanged)."""

    if update.obligation_id != obligation.id:
        raise ValueError(
            f"update for {update.obligation_id!r} applied to obligation {obligation.id!r}"
        )
    return replace(obligation, next_due=update.proposed_next_due)


__all__ = [
    "AmountVariation",
    "LinkResult",
    "ObligationUpdate",
    "amount_matches",
    "apply_update",
    "description_matches",
    "find_obligation",
    "link_to_obligations",
]

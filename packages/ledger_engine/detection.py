"""Advisory detection of recurring obligations from settled history.

Records are grouped by a normalized description and sign class, the mean gap
between consecutive members is mapped onto a frequency band, and a confidence
score rewards count, amount consistency and timing regularity. Output is a
list of suggestions; nothing is created or modified.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal

from .cadence import advance_by_period
from .logging_setup import get_logger
from .models import (
    Frequency,
    RecurringObligation,
    RecurringSuggestion,
    TransactionRecord,
    to_cents,
)
from .settings import DetectionSettings

_logger = get_logger("ledger_engine.detection")

# Inclusive mean-gap bands in days, checked in order.
FREQUENCY_BANDS: tuple[tuple[float, float, Frequency], ...] = (
    (5, 9, "weekly"),
    (12, 16, "biweekly"),
    (27, 33, "monthly"),
    (85, 97, "quarterly"),
    (355, 375, "yearly"),
)

_DIGITS = re.compile(r"\d+")
_PUNCT = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


def normalize_description(description: str) -> str:
    """Casefold, drop digits and punctuation, collapse whitespace."""

    s = _DIGITS.sub("", description.casefold())
    s = _PUNCT.sub("", s)
    return _SPACES.sub(" ", s).strip()


def _gaps(members: Sequence[TransactionRecord]) -> list[int]:
    return [(b.date - a.date).days for a, b in zip(members, members[1:])]


def classify_gaps(gaps: Sequence[int]) -> Frequency | None:
    """Map the mean of ``gaps`` onto a frequency band, or ``None``."""

    if not gaps:
        return None
    mean = sum(gaps) / len(gaps)
    for low, high, freq in FREQUENCY_BANDS:
        if low <= mean <= high:
            return freq
    return None


def _amount_spread(amounts: Sequence[Decimal], mean: Decimal) -> Decimal | None:
    mags = [abs(a) for a in amounts]
    width = max(mags) - min(mags)
    if mean == 0:
        return Decimal("0") if width == 0 else None
    return width / abs(mean)


def score_confidence(members: Sequence[TransactionRecord], mean_amount: Decimal) -> int:
    """Confidence 0-100 for a chronologically sorted group."""

    score = min(10 * len(members), 40)

    spread = _amount_spread([m.amount for m in members], mean_amount)
    if spread is not None:
        if spread < Decimal("0.1"):
            score += 30
        elif spread < Decimal("0.2"):
            score += 20
        elif spread < Decimal("0.3"):
            score += 10

    gaps = _gaps(members)
    if gaps:
        mean_gap = sum(gaps) / len(gaps)
        deviation = max(abs(g - mean_gap) for g in gaps)
        if deviation < 3:
            score += 30
        elif deviation < 7:
            score += 15

    return min(score, 100)


def _loosely_matches(description: str, existing: Iterable[RecurringObligation]) -> bool:
    needle = description.casefold()
    for ob in existing:
        other = ob.description.casefold()
        if needle in other or other in needle:
            return True
    return False


def detect_recurring(
    records: Iterable[TransactionRecord],
    existing: Iterable[RecurringObligation] = (),
    *,
    settings: DetectionSettings | None = None,
) -> list[RecurringSuggestion]:
    """Suggest recurring obligations found in ``records``.

    Manual and pending records are ignored. Suggestions whose description
    loosely matches an ``existing`` obligation are filtered out. The result
    is sorted by confidence, highest first.
    """

    settings = settings or DetectionSettings()
    existing = list(existing)

    groups: dict[tuple[str, bool], list[TransactionRecord]] = defaultdict(list)
    for r in records:
        if r.manual or r.pending:
            continue
        groups[(normalize_description(r.description), r.amount >= 0)].append(r)

    suggestions: list[RecurringSuggestion] = []
    for (_key, income), members in groups.items():
        if len(members) < settings.min_occurrences:
            continue
        members = sorted(members, key=lambda r: (r.date, r.id))
        freq = classify_gaps(_gaps(members))
        if freq is None:
            continue

        mean_amount = to_cents(sum((m.amount for m in members), Decimal("0")) / len(members))
        confidence = score_confidence(members, mean_amount)
        threshold = settings.income_confidence if income else settings.expense_confidence
        if confidence < threshold:
            continue

        latest = members[-1]
        if _loosely_matches(latest.description, existing):
            _logger.debug("Skipping %r: already tracked", latest.description)
            continue

        suggestions.append(
            RecurringSuggestion(
                description=latest.description,
                category=latest.category,
                average_amount=mean_amount,
                frequency=freq,
                confidence=confidence,
                suggested_next_date=advance_by_period(latest.date, freq),
                occurrences=tuple(members),
            )
        )

    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    _logger.info("Detected %d recurring suggestion(s)", len(suggestions))
    return suggestions


__all__ = [
    "FREQUENCY_BANDS",
    "classify_gaps",
    "detect_recurring",
    "normalize_description",
    "score_confidence",
]

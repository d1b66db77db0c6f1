"""Calendar arithmetic for recurring cadences.

Occurrence ``k`` of an obligation is computed from its base date rather than
by repeatedly stepping from the previous occurrence, so clamping a short
month (Jan 31 -> Feb 29) never drifts later occurrences (Mar 31 stays Mar 31).
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from .models import Cadence, Frequency

_DAY_STEPS: dict[str, int] = {"weekly": 7, "biweekly": 14}
_MONTH_STEPS: dict[str, int] = {"monthly": 1, "quarterly": 3, "yearly": 12}


def add_months(day: date, months: int, *, day_of_month: int | None = None) -> date:
    """Shift ``day`` by ``months`` calendar months, clamping to the month's end.

    ``day_of_month`` (when given) replaces the original day before clamping.
    """

    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    wanted = day_of_month if day_of_month is not None else day.day
    return date(year, month, min(wanted, calendar.monthrange(year, month)[1]))


def nth_weekday(year: int, month: int, weekday: int, ordinal: int | str) -> date:
    """Return the ``ordinal``-th ``weekday`` (Monday=0) of a month.

    ``ordinal="last"`` is whichever occurrence is chronologically last, so it
    resolves to the 4th in months that only contain four of that weekday.
    """

    days_in_month = calendar.monthrange(year, month)[1]
    matches = [
        date(year, month, d)
        for d in range(1, days_in_month + 1)
        if date(year, month, d).weekday() == weekday
    ]
    if ordinal == "last":
        return matches[-1]
    if not isinstance(ordinal, int) or not 1 <= ordinal <= len(matches):
        raise ValueError(f"invalid week ordinal: {ordinal!r}")
    return matches[ordinal - 1]


def occurrence_on(base: date, cadence: Cadence, k: int) -> date:
    """Date of the ``k``-th occurrence counted from ``base`` (``k=0`` is ``base``)."""

    if k < 0:
        raise ValueError("occurrence index must be non-negative")
    if k == 0:
        return base

    freq = cadence.frequency
    if freq in _DAY_STEPS:
        return base + timedelta(days=_DAY_STEPS[freq] * k)

    months = _MONTH_STEPS[freq] * k
    if freq == "yearly":
        return add_months(base, months)

    if cadence.week_of_month is not None and cadence.weekday is not None:
        target = add_months(base.replace(day=1), months)
        return nth_weekday(target.year, target.month, cadence.weekday, cadence.week_of_month)
    return add_months(base, months, day_of_month=cadence.day_of_month)


def next_occurrence(current: date, cadence: Cadence) -> date:
    """The occurrence that follows ``current`` under ``cadence``."""

    return occurrence_on(current, cadence, 1)


def advance_by_period(day: date, frequency: Frequency) -> date:
    """Advance by one canonical period (no day or weekday snapping)."""

    return occurrence_on(day, Cadence(frequency), 1)


__all__ = [
    "add_months",
    "advance_by_period",
    "next_occurrence",
    "nth_weekday",
    "occurrence_on",
]

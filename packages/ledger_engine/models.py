"""Domain models for ``ledger_engine``.

Every type here is an immutable value. Engine operations never edit a record
in place; user-level edits go through :func:`dataclasses.replace` (see
:func:`reconcile` and :func:`set_visible`) and return a fresh instance.

Sign convention
---------------
Amounts are :class:`~decimal.Decimal` values quantized to cents. Negative
means value leaving the account; positive means value arriving. Every ingest
path applies exactly one transform to reach this convention.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

# ---------------------------------------------------------------------------
# Shared vocabulary
# ---------------------------------------------------------------------------

type Frequency = Literal["weekly", "biweekly", "monthly", "quarterly", "yearly"]
type WeekOrdinal = Literal[1, 2, 3, 4, "last"]
type AmountType = Literal["fixed", "variable"]
type AccountKind = Literal["asset", "liability"]
type OccurrenceState = Literal["pending-generation", "materialized", "dismissed"]

FREQUENCIES: tuple[str, ...] = ("weekly", "biweekly", "monthly", "quarterly", "yearly")
DEFAULT_CATEGORY = "Uncategorized"
PROJECTED_MARKER = " (Projected)"

CENT = Decimal("0.01")


def to_cents(value: Decimal | int | str) -> Decimal:
    """Quantize ``value`` to two decimal places (``ROUND_HALF_UP``)."""

    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A single actual ledger entry.

    ``id`` embeds the calendar date and the per-day sequence assigned at
    ingest, so sorting by ``(date, id)`` reproduces the intra-day order of the
    source file without timestamps. ``visible`` toggles inclusion in balance
    sums without deleting the row.
    """

    id: str
    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    account: str | None = None
    pending: bool = False
    reconciled: bool = False
    manual: bool = False
    visible: bool = True
    source: str | None = None
    obligation_id: str | None = None

    projected: bool = field(default=False, init=False)


def reconcile(record: TransactionRecord, reconciled: bool = True) -> TransactionRecord:
    return replace(record, reconciled=reconciled)


def set_visible(record: TransactionRecord, visible: bool) -> TransactionRecord:
    return replace(record, visible=visible)


# ---------------------------------------------------------------------------
# Recurring obligations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Cadence:
    """When a recurring obligation falls.

    Attributes
    ----------
    frequency:
        One of ``weekly``, ``biweekly``, ``monthly``, ``quarterly``, ``yearly``.
    day_of_month:
        Optional day (1-31) that monthly/quarterly occurrences snap to. Short
        months clamp to their last day.
    week_of_month, weekday:
        Optional ordinal (1-4 or ``"last"``) plus weekday (0=Monday ...
        6=Sunday) for rules like "2nd Tuesday". Mutually exclusive with
        ``day_of_month``; both must be set together.
    """

    frequency: Frequency
    day_of_month: int | None = None
    week_of_month: WeekOrdinal | None = None
    weekday: int | None = None

    def __post_init__(self) -> None:
        if self.frequency not in FREQUENCIES:
            raise ValueError(f"unsupported frequency: {self.frequency!r}")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise ValueError("Cadence.day_of_month must be within 1..31")
        if (self.week_of_month is None) != (self.weekday is None):
            raise ValueError("Cadence.week_of_month and Cadence.weekday must be set together")
        if self.week_of_month is not None:
            if self.day_of_month is not None:
                raise ValueError("Cadence accepts day_of_month or week_of_month, not both")
            if self.week_of_month not in (1, 2, 3, 4, "last"):
                raise ValueError("Cadence.week_of_month must be 1..4 or 'last'")
            if self.weekday is None or not 0 <= self.weekday <= 6:
                raise ValueError("Cadence.weekday must be within 0..6 (Monday=0)")


@dataclass(frozen=True, slots=True)
class RecurringObligation:
    """A recurring bill or income stream owned by the caller.

    ``amount`` is the expected signed amount. ``variable`` obligations accept
    matched amounts within ``tolerance_pct`` percent of ``|amount|``.
    Paused obligations are deactivated (``active=False``), not deleted.
    """

    id: str
    description: str
    amount: Decimal
    cadence: Cadence
    next_due: date
    category: str = DEFAULT_CATEGORY
    amount_type: AmountType = "fixed"
    tolerance_pct: Decimal = Decimal("10")
    active: bool = True
    account: str | None = None

    def __post_init__(self) -> None:
        if self.amount_type not in ("fixed", "variable"):
            raise ValueError(f"unsupported amount_type: {self.amount_type!r}")
        if self.tolerance_pct < 0:
            raise ValueError("RecurringObligation.tolerance_pct must be non-negative")


@dataclass(frozen=True, slots=True)
class ProjectedOccurrence:
    """An ephemeral future entry derived from an active obligation.

    ``id`` is ``proj-<obligation_id>-<YYYY-MM-DD>``; recomputation always
    yields the same id for the same slot.
    """

    id: str
    obligation_id: str
    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    visible: bool = True

    projected: bool = field(default=True, init=False)
    manual: bool = field(default=False, init=False)


type LedgerEntry = TransactionRecord | ProjectedOccurrence


@dataclass(frozen=True, slots=True)
class BalancedEntry:
    """A ledger entry annotated with its running balance."""

    entry: LedgerEntry
    balance: Decimal

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def date(self) -> date:
        return self.entry.date

    @property
    def amount(self) -> Decimal:
        return self.entry.amount

    @property
    def visible(self) -> bool:
        return self.entry.visible

    @property
    def projected(self) -> bool:
        return self.entry.projected


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of parsing one file.

    ``errors`` holds row-level and file-level messages; ``warnings`` holds
    conditions the user should confirm (e.g. an ambiguous sign convention).
    """

    records: tuple[TransactionRecord, ...]
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    format_name: str | None = None
    inverted: bool = False


@dataclass(frozen=True, slots=True)
class RecurringSuggestion:
    description: str
    category: str
    average_amount: Decimal
    frequency: Frequency
    confidence: int
    suggested_next_date: date
    occurrences: tuple[TransactionRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class ProjectionResult:
    """Balanced, totally ordered entries for one account.

    ``anchor_id`` names the record whose balance equals the supplied anchor
    (``None`` when the account has no imported records). ``warnings`` carries
    data-quality conditions for the caller to surface.
    """

    entries: tuple[BalancedEntry, ...]
    anchor_id: str | None = None
    warnings: tuple[str, ...] = ()


__all__ = [
    "AccountKind",
    "AmountType",
    "BalancedEntry",
    "Cadence",
    "CENT",
    "DEFAULT_CATEGORY",
    "FREQUENCIES",
    "Frequency",
    "LedgerEntry",
    "OccurrenceState",
    "PROJECTED_MARKER",
    "ParseResult",
    "ProjectedOccurrence",
    "ProjectionResult",
    "RecurringObligation",
    "RecurringSuggestion",
    "TransactionRecord",
    "WeekOrdinal",
    "reconcile",
    "set_visible",
    "to_cents",
]

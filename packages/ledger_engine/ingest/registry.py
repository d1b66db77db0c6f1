"""Format registry: ordered (name, header predicate, row parser) entries.

The first predicate that matches a file's headers wins, so entries are listed
most-specific first. Layouts with separate inflow/outflow columns come before
single-amount layouts whose predicates could also match their headers.

Registries are plain tuples; callers needing extra institutions build their
own tuple (e.g. ``(my_spec, *DEFAULT_REGISTRY)``) and pass it to
:func:`ledger_engine.ingest.parser.parse_rows`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from .adapters.shared_layout_csv import matches_usaa, parse_signed_row
from .adapters.split_amount_csv import matches_capital_one, parse_split_row
from .adapters.typed_amount_csv import matches_apple_card, matches_chase, parse_typed_row
from .columns import ColumnMap, header_set
from .rows import ParsedRow

type HeaderPredicate = Callable[[frozenset[str]], bool]
type RowParser = Callable[[Mapping[str, str | None], ColumnMap], ParsedRow | None]

GENERIC_FORMAT = "generic"

_OUTFLOW_HEADERS = frozenset({"debit", "withdrawal", "withdrawals", "debit amount", "outflow"})
_INFLOW_HEADERS = frozenset({"credit", "deposit", "deposits", "credit amount", "inflow"})


@dataclass(frozen=True, slots=True)
class FormatSpec:
    """One supported layout.

    ``shared_layout`` marks layouts reused by products with opposite sign
    conventions; the parser then applies the file-level inversion decision.
    """

    name: str
    matches: HeaderPredicate
    parse_row: RowParser
    shared_layout: bool = False


def matches_split_layout(headers: frozenset[str]) -> bool:
    return bool(headers & _OUTFLOW_HEADERS) and bool(headers & _INFLOW_HEADERS)


def parse_generic_row(row: Mapping[str, str | None], cols: ColumnMap) -> ParsedRow | None:
    """Fallback: pick a sign rule from whichever amount columns resolved."""

    if cols.amount is not None:
        if cols.type is not None:
            return parse_typed_row(row, cols)
        return parse_signed_row(row, cols)
    if cols.has_split_amounts:
        return parse_split_row(row, cols)
    return None


DEFAULT_REGISTRY: tuple[FormatSpec, ...] = (
    FormatSpec("capital_one", matches_capital_one, parse_split_row),
    FormatSpec("debit_credit", matches_split_layout, parse_split_row),
    FormatSpec("apple_card", matches_apple_card, parse_typed_row),
    FormatSpec("chase", matches_chase, parse_typed_row),
    FormatSpec("usaa", matches_usaa, parse_signed_row, shared_layout=True),
)

GENERIC_SPEC = FormatSpec(GENERIC_FORMAT, lambda _headers: True, parse_generic_row)


def detect_format(
    headers: Iterable[str], registry: Sequence[FormatSpec] = DEFAULT_REGISTRY
) -> FormatSpec | None:
    """Return the first registry entry whose predicate accepts ``headers``."""

    normalized = header_set(headers)
    for layout in registry:
        if layout.matches(normalized):
            return layout
    return None


__all__ = [
    "DEFAULT_REGISTRY",
    "FormatSpec",
    "GENERIC_FORMAT",
    "GENERIC_SPEC",
    "detect_format",
    "matches_split_layout",
    "parse_generic_row",
]

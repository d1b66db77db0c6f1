"""Adapter for USAA exports, whose checking and credit-card products share one layout.

Header (both products):
``Date, Description, Original Description, Category, Amount, Status``

Checking exports already follow the canonical convention (debits negative).
Credit-card exports use the opposite convention, and nothing in the header
says which product produced the file. The file-level decision lives in
:func:`decide_inversion`: when more than ``threshold`` of the rows look like a
received card payment *and* carry a positive raw amount, every row in the file
is inverted. This is a heuristic; near-threshold ratios and disagreement with
an explicit account hint are returned as warnings.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ...models import AccountKind
from ..columns import ColumnMap
from ..fields import cell, parse_amount
from ..rows import ParsedRow, build_row, read_common

USAA_HEADERS: frozenset[str] = frozenset(
    {"date", "description", "original description", "category", "amount", "status"}
)

PAYMENT_SIGNATURE_RE = re.compile(
    r"payment\s*(?:received|-?\s*thank\s*you)"
    r"|\b(?:autopay|auto\s*pay|automatic)\s+payment\b"
    r"|^credit\s*card\s*payments?$",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class InversionDecision:
    invert: bool
    ratio: float
    warning: str | None = None


def matches_usaa(headers: frozenset[str]) -> bool:
    return USAA_HEADERS <= headers


def parse_signed_row(row: Mapping[str, str | None], cols: ColumnMap) -> ParsedRow | None:
    """Parse a row keeping the exported sign (the file-level step may invert it)."""

    common = read_common(row, cols)
    if common is None:
        return None
    amount_raw = cell(row, cols.amount)
    if amount_raw is None:
        return None
    return build_row(common, parse_amount(amount_raw))


def is_payment_received(row: ParsedRow) -> bool:
    return bool(
        PAYMENT_SIGNATURE_RE.search(row.description) or PAYMENT_SIGNATURE_RE.search(row.category)
    )


def payment_ratio(rows: Sequence[ParsedRow]) -> float:
    """Fraction of rows that look like a received payment with a positive raw amount."""

    if not rows:
        return 0.0
    hits = sum(1 for r in rows if r.amount > 0 and is_payment_received(r))
    return hits / len(rows)


def decide_inversion(
    rows: Sequence[ParsedRow],
    *,
    threshold: float,
    margin: float,
    account_kind: AccountKind | None = None,
) -> InversionDecision:
    ratio = payment_ratio(rows)
    heuristic = ratio > threshold

    if account_kind is not None:
        invert = account_kind == "liability"
        warning = None
        if invert != heuristic:
            warning = (
                f"Account marked {account_kind} but {ratio:.1%} of rows look like received "
                f"card payments (threshold {threshold:.1%}); using the account type."
            )
        return InversionDecision(invert=invert, ratio=ratio, warning=warning)

    warning = None
    if ratio > 0 and abs(ratio - threshold) <= margin:
        action = "inverted" if heuristic else "kept"
        warning = (
            f"Ambiguous sign convention: {ratio:.1%} of rows look like received card "
            f"payments (threshold {threshold:.1%}); signs were {action}. "
            "Confirm whether this file is a checking or credit-card export."
        )
    return InversionDecision(invert=heuristic, ratio=ratio, warning=warning)


__all__ = [
    "InversionDecision",
    "PAYMENT_SIGNATURE_RE",
    "decide_inversion",
    "is_payment_received",
    "matches_usaa",
    "parse_signed_row",
    "payment_ratio",
]

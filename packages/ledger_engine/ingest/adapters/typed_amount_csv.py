"""Adapter for single-amount layouts that carry a transaction-type column.

Apple Card exports (``Transaction Date, Clearing Date, Description, Merchant,
Category, Type, Amount (USD), Purchased By``) report every amount as a
positive magnitude; Chase card exports (``Transaction Date, Post Date,
Description, Category, Type, Amount, Memo``) label rows ``Sale``, ``Payment``,
``Return`` and so on. In both, the type keyword decides the sign.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Literal

from ..columns import ColumnMap
from ..fields import cell, parse_amount
from ..rows import ParsedRow, build_row, read_common

APPLE_CARD_HEADERS: frozenset[str] = frozenset(
    {"transaction date", "clearing date", "description", "merchant", "type", "amount (usd)"}
)
CHASE_HEADERS: frozenset[str] = frozenset(
    {"transaction date", "post date", "description", "category", "type", "amount"}
)

# Matched as whole words against the lower-cased type cell.
OUTFLOW_TYPES: frozenset[str] = frozenset(
    {"purchase", "sale", "installment", "interest", "fee", "other", "debit"}
)
INFLOW_TYPES: frozenset[str] = frozenset({"payment", "refund", "return", "credit"})


def classify_type(raw_type: str | None) -> Literal["outflow", "inflow"] | None:
    if not raw_type:
        return None
    words = set(raw_type.lower().replace("-", " ").replace("_", " ").split())
    # Inflow keywords first so "Payment Credit"/"Refund Purchase" read as inflows.
    if words & INFLOW_TYPES:
        return "inflow"
    if words & OUTFLOW_TYPES:
        return "outflow"
    return None


def signed_by_type(amount: Decimal, raw_type: str | None) -> Decimal:
    """Apply the type keyword rule; unknown types keep the exported sign."""

    direction = classify_type(raw_type)
    if direction == "outflow":
        return -abs(amount)
    if direction == "inflow":
        return abs(amount)
    return amount


def parse_typed_row(row: Mapping[str, str | None], cols: ColumnMap) -> ParsedRow | None:
    common = read_common(row, cols)
    if common is None:
        return None
    amount_raw = cell(row, cols.amount)
    if amount_raw is None:
        return None
    amount = signed_by_type(parse_amount(amount_raw), cell(row, cols.type))
    return build_row(common, amount)


def matches_apple_card(headers: frozenset[str]) -> bool:
    return APPLE_CARD_HEADERS <= headers


def matches_chase(headers: frozenset[str]) -> bool:
    return CHASE_HEADERS <= headers


__all__ = [
    "INFLOW_TYPES",
    "OUTFLOW_TYPES",
    "classify_type",
    "matches_apple_card",
    "matches_chase",
    "parse_typed_row",
    "signed_by_type",
]

"""Adapter for layouts with separate inflow and outflow columns.

Covers card exports such as Capital One
(``Transaction Date, Posted Date, Card No., Description, Category, Debit,
Credit``) and bank statements with ``Withdrawals``/``Deposits`` columns.

Sign rule (the only transform applied): ``amount = inflow`` when the inflow
cell is positive, otherwise ``-|outflow|``. Outflow cells exported with a
leading minus are treated as magnitudes.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from ..columns import ColumnMap
from ..fields import cell, parse_optional_amount
from ..rows import ParsedRow, build_row, read_common

CAPITAL_ONE_HEADERS: frozenset[str] = frozenset(
    {"transaction date", "posted date", "card no.", "description", "debit", "credit"}
)


def split_amount(inflow: Decimal | None, outflow: Decimal | None) -> Decimal:
    if inflow is not None and inflow > 0:
        return inflow
    return -abs(outflow) if outflow is not None else Decimal("0.00")


def parse_split_row(row: Mapping[str, str | None], cols: ColumnMap) -> ParsedRow | None:
    common = read_common(row, cols)
    if common is None:
        return None
    inflow_raw = cell(row, cols.inflow)
    outflow_raw = cell(row, cols.outflow)
    if inflow_raw is None and outflow_raw is None:
        return None
    amount = split_amount(parse_optional_amount(inflow_raw), parse_optional_amount(outflow_raw))
    return build_row(common, amount)


def matches_capital_one(headers: frozenset[str]) -> bool:
    return CAPITAL_ONE_HEADERS <= headers


__all__ = ["matches_capital_one", "parse_split_row", "split_amount"]

"""Intermediate row shape produced by adapters before ids are assigned."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ..models import DEFAULT_CATEGORY
from .columns import ColumnMap
from .fields import cell, is_pending_status, join_descriptions, parse_date


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """One source row after cell parsing and its single sign transform."""

    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    pending: bool = False


@dataclass(frozen=True, slots=True)
class CommonFields:
    date_raw: str
    description: str
    category: str
    pending: bool


def read_common(row: Mapping[str, str | None], cols: ColumnMap) -> CommonFields | None:
    """Extract the layout-independent cells, or ``None`` when a mandatory one is blank."""

    date_raw = cell(row, cols.date)
    description = join_descriptions(
        cell(row, cols.description), cell(row, cols.secondary_description)
    )
    if date_raw is None or description is None:
        return None
    return CommonFields(
        date_raw=date_raw,
        description=description,
        category=cell(row, cols.category) or DEFAULT_CATEGORY,
        pending=is_pending_status(cell(row, cols.status)),
    )


def build_row(common: CommonFields, amount: Decimal) -> ParsedRow:
    return ParsedRow(
        date=parse_date(common.date_raw),
        description=common.description,
        amount=amount,
        category=common.category,
        pending=common.pending,
    )


__all__ = ["CommonFields", "ParsedRow", "build_row", "read_common"]

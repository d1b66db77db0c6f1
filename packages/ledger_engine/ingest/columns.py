"""Header resolution: semantic field -> concrete column name, once per file."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields

from ..settings import DEFAULT_FIELD_ALIASES


def _norm_header(h: str) -> str:
    return " ".join(h.replace("﻿", "").split()).casefold()


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Resolved column names for one file (``None`` when not present)."""

    date: str | None = None
    description: str | None = None
    secondary_description: str | None = None
    amount: str | None = None
    outflow: str | None = None
    inflow: str | None = None
    category: str | None = None
    status: str | None = None
    type: str | None = None

    @property
    def has_split_amounts(self) -> bool:
        return self.outflow is not None and self.inflow is not None


def resolve_columns(
    headers: Iterable[str],
    aliases: Mapping[str, tuple[str, ...]] = DEFAULT_FIELD_ALIASES,
) -> ColumnMap:
    """Map each semantic field to the highest-priority header present.

    Exact header matches win; otherwise a case- and whitespace-insensitive
    match is accepted. A column is never assigned to two fields: the
    secondary description is dropped when it resolves to the primary one.
    """

    header_list = [h for h in headers if h]
    by_norm: dict[str, str] = {}
    for h in header_list:
        by_norm.setdefault(_norm_header(h), h)
    exact = set(header_list)

    def pick(field: str) -> str | None:
        for alias in aliases.get(field, ()):
            if alias in exact:
                return alias
        for alias in aliases.get(field, ()):
            found = by_norm.get(_norm_header(alias))
            if found is not None:
                return found
        return None

    resolved = {f.name: pick(f.name) for f in fields(ColumnMap)}
    if resolved["secondary_description"] == resolved["description"]:
        resolved["secondary_description"] = None
    return ColumnMap(**resolved)


def header_set(headers: Iterable[str]) -> frozenset[str]:
    """Normalized header names used by format predicates."""

    return frozenset(_norm_header(h) for h in headers if h)


__all__ = ["ColumnMap", "header_set", "resolve_columns"]

"""File readers that hand raw tabular rows to :func:`parse_rows`.

The engine itself never touches the filesystem; these helpers are the
one-shot read performed by entrypoints (the CLI) before parsing.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from decimal import Decimal
from os import PathLike
from pathlib import Path
from typing import Any

from ..models import to_cents


@dataclass(frozen=True, slots=True)
class RawTable:
    """Header list plus string-keyed rows, exactly as the source provided them.

    ``statement_balance`` is set when the source carries a closing balance
    (JSON exports with an ``account_summary``); callers may use it as the
    anchor.
    """

    headers: list[str]
    rows: list[dict[str, str]]
    statement_balance: Decimal | None = None
    extras: dict[str, Any] = field(default_factory=dict)


def read_csv_rows(csv_path: str | PathLike[str]) -> RawTable:
    """Read a bank CSV export (UTF-8, optional BOM) into a :class:`RawTable`.

    Raises ``csv.Error`` when the file has no header row.
    """

    p = Path(csv_path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        headers = [h.strip() for h in (reader.fieldnames or []) if h is not None]
        if not headers:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        rows: list[dict[str, str]] = []
        for row in reader:
            # DictReader aggregates surplus cells under a None key; drop them.
            rows.append(
                {k.strip(): (v if v is not None else "") for k, v in row.items() if k is not None}
            )
    return RawTable(headers=headers, rows=rows)


# JSON key -> header name understood by the generic alias table.
_JSON_KEYS: dict[str, tuple[str, ...]] = {
    "Date": ("date", "transaction_date", "posted_date"),
    "Description": ("description", "desc", "merchant", "name"),
    "Category": ("category", "cat"),
    "Amount": ("amount", "amt"),
    "Type": ("type",),
}


def _first_present(obj: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for k in keys:
        if k in obj and obj[k] is not None and obj[k] != "":
            return obj[k]
    return None


def rows_from_json(payload: Any) -> RawTable:
    """Convert a parsed JSON export into a :class:`RawTable`.

    Accepts either a bare list of transaction objects or an object with a
    ``transactions`` list and an optional ``account_summary.new_balance``.
    """

    summary: dict[str, Any] = {}
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = payload.get("transactions") or []
        summary = payload.get("account_summary") or {}
    else:
        raise ValueError("JSON export must be a list or an object with 'transactions'")

    headers = [*_JSON_KEYS, "Status"]
    rows: list[dict[str, str]] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("each JSON transaction must be an object")
        row = {
            header: ("" if (v := _first_present(item, keys)) is None else str(v))
            for header, keys in _JSON_KEYS.items()
        }
        pending = item.get("pending", item.get("isPending", False))
        row["Status"] = "Pending" if pending is True or str(pending).lower() == "true" else ""
        rows.append(row)

    balance = summary.get("new_balance")
    return RawTable(
        headers=headers,
        rows=rows,
        statement_balance=to_cents(str(balance)) if balance is not None else None,
        extras={k: v for k, v in summary.items() if k != "new_balance"},
    )


def read_json_rows(json_path: str | PathLike[str]) -> RawTable:
    with Path(json_path).open(encoding="utf-8") as f:
        return rows_from_json(json.load(f))


def read_rows(path: str | PathLike[str]) -> RawTable:
    """Dispatch on file extension (``.json`` vs anything else as CSV)."""

    if Path(path).suffix.lower() == ".json":
        return read_json_rows(path)
    return read_csv_rows(path)


__all__ = ["RawTable", "read_csv_rows", "read_json_rows", "read_rows", "rows_from_json"]

"""Cell-level parsing helpers shared by every ingest adapter.

Amounts parse to cent-quantized :class:`~decimal.Decimal`; dates parse to a
plain :class:`datetime.date` (no time-of-day, no timezone) so nothing
downstream depends on wall-clock offsets.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from ..models import to_cents

_WS_RE = re.compile(r"\s+")
_CURRENCY_RE = re.compile(r"^(?:USD|US\$|\$|€|£)\s*|\s*(?:USD|\$)$", re.IGNORECASE)

# Tried in order after the ISO fast path.
_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%Y/%m/%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%d %b %Y",
    "%d %B %Y",
)


def clean_text(value: str | None) -> str | None:
    """Collapse internal whitespace/newlines and strip; empty becomes ``None``."""

    if value is None:
        return None
    cleaned = _WS_RE.sub(" ", value).strip()
    return cleaned or None


def cell(row: Mapping[str, str | None], column: str | None) -> str | None:
    """Return the cleaned cell for ``column`` (``None`` when absent/blank)."""

    if column is None:
        return None
    return clean_text(row.get(column))


def parse_amount(raw: str | None) -> Decimal:
    """Parse a bank amount string into a signed, cent-quantized ``Decimal``.

    Handles currency symbols/codes, thousands separators, a leading ``+``/``-``
    (including the unicode minus), and accounting parentheses. Raises
    ``ValueError`` when nothing numeric remains.
    """

    if raw is None:
        raise ValueError("amount is required")
    s = raw.strip().replace("−", "-")
    if not s:
        raise ValueError("amount is empty")

    negative = False
    # Strip sign, currency marker and parentheses in any order until stable,
    # so "-($1,234.56)", "$(12.00)" and "+ $375.00" all parse.
    while True:
        before = s
        if s.startswith("+"):
            s = s[1:].lstrip()
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
        s = _CURRENCY_RE.sub("", s).strip()
        if len(s) >= 2 and s.startswith("(") and s.endswith(")"):
            negative = True
            s = s[1:-1].strip()
        if s == before:
            break

    s = s.replace(",", "").replace(" ", "")
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return to_cents(-abs(d) if negative else d)


def parse_optional_amount(raw: str | None) -> Decimal | None:
    """Like :func:`parse_amount` but blank cells yield ``None``."""

    if raw is None or not raw.strip():
        return None
    return parse_amount(raw)


def parse_date(raw: str | None) -> date:
    """Parse ISO and common US/locale date strings into a calendar date.

    ISO datetimes (``2024-01-05T13:45:00Z``, ``2024-01-05 13:45``) keep only
    their calendar part; no timezone conversion is applied.
    """

    if raw is None or not raw.strip():
        raise ValueError("date is required")
    s = raw.strip()

    iso = s.split("T", 1)[0].split(" ", 1)[0]
    try:
        return date.fromisoformat(iso)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    # Some exports append a time to US dates ("01/05/2024 08:30 AM").
    first = s.split()[0]
    if first != s:
        for fmt in ("%m/%d/%Y", "%m/%d/%y"):
            try:
                return datetime.strptime(first, fmt).date()
            except ValueError:
                continue

    raise ValueError(f"invalid date: {raw!r}")


def is_pending_status(raw: str | None) -> bool:
    return raw is not None and "pending" in raw.lower()


def join_descriptions(primary: str | None, secondary: str | None) -> str | None:
    """Append the secondary ("original") description when it adds text."""

    if not primary:
        return secondary
    if secondary and secondary.casefold() != primary.casefold():
        return f"{primary} | {secondary}"
    return primary


__all__ = [
    "cell",
    "clean_text",
    "is_pending_status",
    "join_descriptions",
    "parse_amount",
    "parse_date",
    "parse_optional_amount",
]

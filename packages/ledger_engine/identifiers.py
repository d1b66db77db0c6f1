"""Stable identifiers for records and projected occurrence slots.

Record ids have the shape ``YYYYMMDD-SSSS-<fingerprint>``: the date and the
zero-padded per-day sequence come first so a plain lexical sort reproduces
chronological order within a day, and the fingerprint keeps ids from
different files distinct while making re-imports of the same file idempotent.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal

PROJECTION_PREFIX = "proj-"
MANUAL_PREFIX = "manual-"
FINGERPRINT_LENGTH = 10


def compute_fingerprint(
    *,
    source: str | None,
    account: str | None,
    day: date,
    description: str,
    amount: Decimal,
    sequence: int,
) -> str:
    """SHA-256 over the canonical fields of one ingested row.

    Fields: source (lowercased), account, date (YYYY-MM-DD), description
    (trimmed), amount (2dp string) and the per-day sequence.
    """

    payload = {
        "source": (source or "").strip().lower(),
        "account": account,
        "date": day.isoformat(),
        "description": description.strip(),
        "amount": f"{amount:.2f}",
        "sequence": sequence,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def record_id(day: date, sequence: int, fingerprint: str) -> str:
    return f"{day:%Y%m%d}-{sequence:04d}-{fingerprint[:FINGERPRINT_LENGTH]}"


def occurrence_id(obligation_id: str, day: date) -> str:
    return f"{PROJECTION_PREFIX}{obligation_id}-{day.isoformat()}"


def materialized_id(occurrence: str) -> str:
    """Id of the manual record created from an occurrence slot."""

    return MANUAL_PREFIX + occurrence.removeprefix(PROJECTION_PREFIX)


__all__ = [
    "MANUAL_PREFIX",
    "PROJECTION_PREFIX",
    "compute_fingerprint",
    "materialized_id",
    "occurrence_id",
    "record_id",
]

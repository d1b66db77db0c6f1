"""Merge a freshly parsed batch into an account's existing records.

Each incoming record is matched against the existing list with the priority
id match, then pending match (same amount, similar description, never a
manual placeholder), then data match (same date, description and amount on
a posted record). What happens next depends on the matched record:

* pending existing, posted incoming: the record has posted; take the new
  data and keep ``reconciled``.
* pending existing, pending incoming: refresh the data, keeping
  ``reconciled`` and any obligation link.
* manual existing: the import replaces the placeholder.
* otherwise: duplicate, skipped.

Unmatched incoming records linked to an obligation replace a manual
(materialized) record of the same obligation dated within a week.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .logging_setup import get_logger
from .models import CENT, TransactionRecord

_logger = get_logger("ledger_engine.merge")

SUPERSEDE_WINDOW_DAYS = 7
PENDING_WORD_OVERLAP = 0.7


@dataclass(frozen=True, slots=True)
class MergeResult:
    records: tuple[TransactionRecord, ...]
    new: int = 0
    updated: int = 0
    skipped: int = 0
    posted: int = 0


def _pending_similar(existing: str, incoming: str) -> bool:
    a, b = existing.casefold().strip(), incoming.casefold().strip()
    if a == b or a in b or b in a:
        return True
    wa, wb = set(a.split()), set(b.split())
    total = max(len(wa), len(wb))
    return total > 0 and len(wa & wb) / total >= PENDING_WORD_OVERLAP


def _find_index(
    records: Sequence[TransactionRecord], incoming: TransactionRecord
) -> tuple[int, bool]:
    """Index of the matching existing record and whether it was a pending match."""

    for i, r in enumerate(records):
        if r.id == incoming.id:
            return i, False
    for i, r in enumerate(records):
        if (
            r.pending
            and not r.manual
            and abs(r.amount - incoming.amount) < CENT
            and _pending_similar(r.description, incoming.description)
        ):
            return i, True
    for i, r in enumerate(records):
        if (
            not r.pending
            and r.date == incoming.date
            and r.description == incoming.description
            and abs(r.amount - incoming.amount) < CENT
        ):
            return i, False
    return -1, False


def _find_placeholder(records: Sequence[TransactionRecord], incoming: TransactionRecord) -> int:
    for i, r in enumerate(records):
        if (
            r.manual
            and r.obligation_id == incoming.obligation_id
            and abs((r.date - incoming.date).days) <= SUPERSEDE_WINDOW_DAYS
        ):
            return i
    return -1


def merge_import(
    existing: Iterable[TransactionRecord], incoming: Iterable[TransactionRecord]
) -> MergeResult:
    """Merge ``incoming`` into ``existing`` and return the new record list.

    Inputs are not modified. Counters report how each incoming record was
    handled (``posted`` counts pending-to-posted transitions).
    """

    records = list(existing)
    new = updated = skipped = posted = 0

    for inc in incoming:
        idx, pending_match = _find_index(records, inc)
        if idx == -1:
            slot = _find_placeholder(records, inc) if inc.obligation_id else -1
            if slot == -1:
                records.append(inc)
            else:
                _logger.debug("Import %s supersedes placeholder %s", inc.id, records[slot].id)
                records[slot] = inc
            new += 1
            continue

        old = records[idx]
        if pending_match and not inc.pending:
            records[idx] = replace(inc, reconciled=old.reconciled, pending=False)
            posted += 1
        elif pending_match:
            records[idx] = replace(
                inc,
                reconciled=old.reconciled,
                obligation_id=inc.obligation_id or old.obligation_id,
                category=inc.category if inc.obligation_id else old.category,
            )
            updated += 1
        elif old.manual:
            records[idx] = replace(inc, reconciled=old.reconciled)
            updated += 1
        else:
            skipped += 1

    _logger.info(
        "Merged import: %d new, %d updated, %d posted, %d skipped", new, updated, posted, skipped
    )
    return MergeResult(
        records=tuple(records), new=new, updated=updated, skipped=skipped, posted=posted
    )


__all__ = ["MergeResult", "SUPERSEDE_WINDOW_DAYS", "merge_import"]

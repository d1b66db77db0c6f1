"""Per-slot lifecycle of projected occurrences.

A slot (one occurrence id) starts out ``pending-generation``. It can be
materialized into a real manual record or dismissed; both are terminal and
suppress regeneration of that slot only. State lives in an immutable
:class:`DismissalSet` that callers pass in and get back.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .identifiers import materialized_id
from .logging_setup import get_logger
from .models import PROJECTED_MARKER, OccurrenceState, ProjectedOccurrence, TransactionRecord

_logger = get_logger("ledger_engine.occurrences")


class OccurrenceStateError(ValueError):
    """Raised on a transition out of a terminal slot state."""


@dataclass(frozen=True, slots=True)
class DismissalSet:
    materialized: frozenset[str] = field(default_factory=frozenset)
    dismissed: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_ids(
        cls, *, materialized: Iterable[str] = (), dismissed: Iterable[str] = ()
    ) -> DismissalSet:
        m, d = frozenset(materialized), frozenset(dismissed)
        if overlap := m & d:
            raise OccurrenceStateError(
                f"occurrence ids both materialized and dismissed: {sorted(overlap)}"
            )
        return cls(materialized=m, dismissed=d)

    def suppresses(self, occurrence_id: str) -> bool:
        return occurrence_id in self.materialized or occurrence_id in self.dismissed

    def state_of(self, occurrence_id: str) -> OccurrenceState:
        if occurrence_id in self.materialized:
            return "materialized"
        if occurrence_id in self.dismissed:
            return "dismissed"
        return "pending-generation"

    def _check_pending(self, occurrence_id: str) -> None:
        state = self.state_of(occurrence_id)
        if state != "pending-generation":
            raise OccurrenceStateError(f"occurrence {occurrence_id!r} is already {state}")

    def materialize(self, occurrence_id: str) -> DismissalSet:
        self._check_pending(occurrence_id)
        return DismissalSet(self.materialized | {occurrence_id}, self.dismissed)

    def dismiss(self, occurrence_id: str) -> DismissalSet:
        self._check_pending(occurrence_id)
        return DismissalSet(self.materialized, self.dismissed | {occurrence_id})


def strip_marker(description: str) -> str:
    return description.removesuffix(PROJECTED_MARKER)


def materialize_occurrence(
    occurrence: ProjectedOccurrence,
    dismissals: DismissalSet,
    *,
    account: str | None = None,
) -> tuple[TransactionRecord, DismissalSet]:
    """Turn a projected occurrence into a manual pending record.

    The new record keeps the occurrence's date, amount, category and
    visibility, drops the projected marker from its description and links
    back to the obligation. The slot is marked materialized so it never
    regenerates.

    Raises
    ------
    OccurrenceStateError
        If the slot was already materialized or dismissed.
    """

    updated = dismissals.materialize(occurrence.id)
    record = TransactionRecord(
        id=materialized_id(occurrence.id),
        date=occurrence.date,
        description=strip_marker(occurrence.description),
        amount=occurrence.amount,
        category=occurrence.category,
        account=account,
        pending=True,
        reconciled=False,
        manual=True,
        visible=occurrence.visible,
        source="manual",
        obligation_id=occurrence.obligation_id,
    )
    _logger.info("Materialized %s as %s", occurrence.id, record.id)
    return record, updated


def dismiss_occurrence(occurrence_id: str, dismissals: DismissalSet) -> DismissalSet:
    """Suppress one slot permanently. Sibling slots are untouched."""

    updated = dismissals.dismiss(occurrence_id)
    _logger.info("Dismissed %s", occurrence_id)
    return updated


__all__ = [
    "DismissalSet",
    "OccurrenceStateError",
    "dismiss_occurrence",
    "materialize_occurrence",
    "strip_marker",
]

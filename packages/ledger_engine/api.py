"""Public API for the ``ledger_engine`` package.

Mostly a stable import surface over the component modules, plus two small
orchestration helpers used by entrypoints: :func:`parse_file` (read + parse
one export) and :func:`import_records` (link to obligations, then merge).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from os import PathLike

from .batch import AccountJob, project_accounts
from .detection import detect_recurring
from .ingest import parse_rows, read_rows
from .ingest.utils import RawTable
from .matching import AmountVariation, ObligationUpdate, link_to_obligations
from .merge import MergeResult, merge_import
from .models import AccountKind, ParseResult, RecurringObligation, TransactionRecord
from .occurrences import DismissalSet, dismiss_occurrence, materialize_occurrence
from .projection import generate_occurrences, project_account
from .settings import IngestSettings


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    merge: MergeResult
    updates: tuple[ObligationUpdate, ...] = ()
    variations: tuple[AmountVariation, ...] = ()


def parse_file(
    path: str | PathLike[str],
    *,
    account_kind: AccountKind | None = None,
    account: str | None = None,
    settings: IngestSettings | None = None,
) -> tuple[ParseResult, RawTable]:
    """Read a CSV or JSON export and parse it.

    Returns the parse result together with the raw table, whose
    ``statement_balance`` (JSON exports only) can serve as the anchor.
    Reader failures (missing file, malformed CSV/JSON) propagate.
    """

    table = read_rows(path)
    result = parse_rows(
        table.headers, table.rows, account_kind=account_kind, account=account, settings=settings
    )
    return result, table


def import_records(
    existing: Iterable[TransactionRecord],
    incoming: Iterable[TransactionRecord],
    obligations: Iterable[RecurringObligation] = (),
) -> ImportOutcome:
    """Link ``incoming`` to ``obligations`` and merge into ``existing``."""

    linked = link_to_obligations(incoming, obligations)
    merged = merge_import(existing, linked.records)
    return ImportOutcome(merge=merged, updates=linked.updates, variations=linked.variations)


__all__ = [
    "AccountJob",
    "DismissalSet",
    "ImportOutcome",
    "detect_recurring",
    "dismiss_occurrence",
    "generate_occurrences",
    "import_records",
    "materialize_occurrence",
    "parse_file",
    "parse_rows",
    "project_account",
    "project_accounts",
]

"""Header + rows -> :class:`~ledger_engine.models.ParseResult`.

Flow
----
1. Detect the layout from the header list (first matching registry entry,
   otherwise the generic alias-table fallback).
2. Resolve semantic columns once for the file.
3. Parse each row with the layout's adapter. Rows missing a mandatory cell
   are skipped silently; rows with an unparseable date or amount become a
   ``"Row N: ..."`` error and the batch continues.
4. For shared layouts, decide once whether to invert every sign.
5. Assign per-day sequence numbers (top of file = highest) and build ids.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from ..identifiers import compute_fingerprint, record_id
from ..logging_setup import get_logger
from ..models import AccountKind, ParseResult, TransactionRecord
from ..settings import IngestSettings
from .adapters.shared_layout_csv import decide_inversion
from .columns import resolve_columns
from .registry import DEFAULT_REGISTRY, GENERIC_SPEC, FormatSpec, detect_format
from .rows import ParsedRow

_logger = get_logger("ledger_engine.ingest.parser")

NO_DATA_ERROR = "No data found in file"
UNSUPPORTED_FORMAT_ERROR = (
    "Unsupported file format: could not find date, description and amount columns"
)


def _is_blank(row: Mapping[str, str | None]) -> bool:
    return all(v is None or not str(v).strip() for v in row.values())


def _run_adapter(
    layout: FormatSpec,
    rows: Sequence[Mapping[str, str | None]],
    headers: Sequence[str],
    settings: IngestSettings,
) -> tuple[list[ParsedRow], list[str]]:
    cols = resolve_columns(headers, settings.field_aliases)
    parsed: list[ParsedRow] = []
    errors: list[str] = []
    for n, row in enumerate(rows, start=1):
        try:
            item = layout.parse_row(row, cols)
        except ValueError as exc:
            errors.append(f"Row {n}: {exc}")
            continue
        if item is None:
            _logger.debug("Skipping row %d: missing required fields", n)
            continue
        parsed.append(item)
    return parsed, errors


def assign_sequences(rows: Sequence[ParsedRow]) -> list[int]:
    """Per-day sequence numbers in file order.

    Exports list newest first, so for each calendar date the first row seen
    gets the day's count and the last gets 1.
    """

    totals = Counter(r.date for r in rows)
    seen: Counter = Counter()
    out: list[int] = []
    for r in rows:
        out.append(totals[r.date] - seen[r.date])
        seen[r.date] += 1
    return out


def to_records(
    rows: Sequence[ParsedRow], *, source: str, account: str | None
) -> list[TransactionRecord]:
    records: list[TransactionRecord] = []
    for row, seq in zip(rows, assign_sequences(rows), strict=True):
        fp = compute_fingerprint(
            source=source,
            account=account,
            day=row.date,
            description=row.description,
            amount=row.amount,
            sequence=seq,
        )
        records.append(
            TransactionRecord(
                id=record_id(row.date, seq, fp),
                date=row.date,
                description=row.description,
                amount=row.amount,
                category=row.category,
                account=account,
                pending=row.pending,
                reconciled=False,
                manual=False,
                visible=True,
                source=source,
            )
        )
    return records


def parse_rows(
    headers: Iterable[str],
    rows: Iterable[Mapping[str, str | None]],
    *,
    account_kind: AccountKind | None = None,
    account: str | None = None,
    settings: IngestSettings | None = None,
    registry: Sequence[FormatSpec] = DEFAULT_REGISTRY,
) -> ParseResult:
    """Parse one exported file's rows into canonical records.

    Parameters
    ----------
    headers:
        Column names in file order.
    rows:
        String-keyed row mappings (e.g. from ``csv.DictReader``).
    account_kind:
        Optional ``"asset"``/``"liability"`` hint. For shared layouts it
        overrides the payment-ratio heuristic.
    account:
        Owning account reference stamped on every record.
    """

    settings = settings or IngestSettings()
    header_list = [h for h in headers if h is not None]
    data = [r for r in rows if not _is_blank(r)]

    if not data:
        return ParseResult(records=(), errors=(NO_DATA_ERROR,))

    layout = detect_format(header_list, registry)
    if layout is None:
        _logger.info("No registered layout matched headers %s; using generic parser", header_list)
        layout = GENERIC_SPEC

    parsed, errors = _run_adapter(layout, data, header_list, settings)
    if layout is GENERIC_SPEC and not parsed:
        return ParseResult(records=(), errors=(*errors, UNSUPPORTED_FORMAT_ERROR))

    warnings: list[str] = []
    inverted = False
    if layout.shared_layout:
        decision = decide_inversion(
            parsed,
            threshold=settings.payment_ratio_threshold,
            margin=settings.ambiguity_margin,
            account_kind=account_kind,
        )
        if decision.warning:
            _logger.warning(decision.warning)
            warnings.append(decision.warning)
        if decision.invert:
            inverted = True
            parsed = [replace(r, amount=-r.amount if r.amount else r.amount) for r in parsed]
        _logger.info(
            "%s: payment ratio %.3f, signs %s",
            layout.name,
            decision.ratio,
            "inverted" if inverted else "kept",
        )

    records = to_records(parsed, source=layout.name, account=account)
    _logger.info(
        "Parsed %d records (%d errors) using layout %s", len(records), len(errors), layout.name
    )
    return ParseResult(
        records=tuple(records),
        errors=tuple(errors),
        warnings=tuple(warnings),
        format_name=layout.name,
        inverted=inverted,
    )


__all__ = [
    "NO_DATA_ERROR",
    "UNSUPPORTED_FORMAT_ERROR",
    "assign_sequences",
    "parse_rows",
    "to_records",
]

# ruff: noqa: I001
"""CLI for the ``ledger_engine`` package.

Command handlers (``cmd_*``) hold the logic and return a process exit code;
the Typer commands below are thin wrappers. Environment variables
(``LEDGER_*`` tuning knobs, ``LEDGER_ENGINE_LOG_LEVEL``) are loaded from a
local ``.env`` using ``python-dotenv`` before any command runs. Errors are
written to stderr as ``Error: ...`` and the command exits with status 1.
"""

from __future__ import annotations

import csv
import json
import sys
from collections.abc import Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging


def _error(msg: str) -> int:
    print(f"Error: {msg}", file=sys.stderr)
    return 1


def _parse_today(value: str | None) -> date:
    return date.fromisoformat(value) if value else date.today()


def _parse_anchor(value: str) -> Decimal:
    from .models import to_cents

    try:
        return to_cents(value.replace(",", "").replace("$", "").strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid anchor balance: {value!r}") from e


def _load_file(csv_path: str, *, account_kind: str | None = None):
    """Read + parse one export; returns ``(ParseResult, RawTable)`` or raises."""

    from .api import parse_file
    from .settings import load_settings

    settings = load_settings()
    return parse_file(csv_path, account_kind=account_kind, settings=settings.ingest)


def _report(result: Any) -> None:
    for w in result.warnings:
        print(f"Warning: {w}", file=sys.stderr)
    for e in result.errors:
        print(f"Error: {e}", file=sys.stderr)


def _fmt_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def cmd_ingest(csv_path: str, *, account_kind: str | None = None, as_json: bool = False) -> int:
    """Parse an export and print the normalized records.

    Row-level errors are reported on stderr and do not fail the command; a
    file that yields no records at all exits with status 1.
    """

    from .schemas import RecordModel

    try:
        result, _table = _load_file(csv_path, account_kind=account_kind)
    except FileNotFoundError:
        return _error(f"File not found: {csv_path}")
    except (csv.Error, json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        return _error(f"Failed to read '{csv_path}': {e}")

    _report(result)
    if not result.records and result.errors:
        return 1

    if as_json:
        payload = {
            "format": result.format_name,
            "inverted": result.inverted,
            "records": [RecordModel.from_domain(r).model_dump(mode="json") for r in result.records],
            "errors": list(result.errors),
            "warnings": list(result.warnings),
        }
        print(json.dumps(payload, indent=2))
        return 0

    table = Table(title=f"{len(result.records)} records ({result.format_name})")
    for col in ("Date", "Description", "Category", "Amount", "Status"):
        table.add_column(col, justify="right" if col == "Amount" else "left")
    for r in result.records:
        table.add_row(
            r.date.isoformat(),
            r.description,
            r.category,
            _fmt_amount(r.amount),
            "pending" if r.pending else "posted",
        )
    Console().print(table)
    return 0


def cmd_detect(csv_path: str, *, state_path: str | None = None, as_json: bool = False) -> int:
    """Suggest recurring obligations found in an export."""

    from .detection import detect_recurring
    from .schemas import load_state
    from .settings import load_settings

    try:
        result, _table = _load_file(csv_path)
        existing = load_state(state_path).obligations_domain() if state_path else []
    except FileNotFoundError as e:
        return _error(f"File not found: {e.filename or csv_path}")
    except (csv.Error, json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        return _error(f"Failed to read input: {e}")

    _report(result)
    suggestions = detect_recurring(
        result.records, existing, settings=load_settings().detection
    )

    if as_json:
        print(
            json.dumps(
                [
                    {
                        "description": s.description,
                        "category": s.category,
                        "average_amount": str(s.average_amount),
                        "frequency": s.frequency,
                        "confidence": s.confidence,
                        "suggested_next_date": s.suggested_next_date.isoformat(),
                        "occurrences": len(s.occurrences),
                    }
                    for s in suggestions
                ],
                indent=2,
            )
        )
        return 0

    table = Table(title=f"{len(suggestions)} recurring suggestion(s)")
    for col in ("Description", "Frequency", "Average", "Confidence", "Next"):
        table.add_column(col)
    for s in suggestions:
        table.add_row(
            s.description,
            s.frequency,
            _fmt_amount(s.average_amount),
            str(s.confidence),
            s.suggested_next_date.isoformat(),
        )
    Console().print(table)
    return 0


def cmd_project(
    csv_path: str,
    *,
    anchor: str | None = None,
    state_path: str | None = None,
    horizon_days: int | None = None,
    today: str | None = None,
    account_kind: str | None = None,
    as_json: bool = False,
) -> int:
    """Print the balanced ledger: imported, manual and projected entries.

    The anchor defaults to the statement balance of a JSON export when
    ``--anchor`` is omitted.
    """

    from .api import import_records
    from .projection import project_account
    from .schemas import LedgerState, load_state
    from .settings import load_settings

    try:
        result, table = _load_file(csv_path, account_kind=account_kind)
        state = load_state(state_path) if state_path else LedgerState()
        obligations = state.obligations_domain()
        dismissals = state.dismissal_set()
        ref_day = _parse_today(today)
        if anchor is not None:
            anchor_value = _parse_anchor(anchor)
        elif table.statement_balance is not None:
            anchor_value = table.statement_balance
        else:
            return _error("--anchor is required unless the export carries a statement balance")
    except FileNotFoundError as e:
        return _error(f"File not found: {e.filename or csv_path}")
    except (csv.Error, json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        return _error(f"Failed to read input: {e}")

    _report(result)
    if not result.records and result.errors:
        return 1

    imported = import_records(state.records_domain(), result.records, obligations)
    horizon = horizon_days if horizon_days is not None else load_settings().projection.horizon_days
    projection = project_account(
        imported.merge.records,
        obligations,
        anchor=anchor_value,
        today=ref_day,
        horizon_days=horizon,
        dismissals=dismissals,
        hidden=frozenset(state.hidden),
    )
    for w in projection.warnings:
        print(f"Warning: {w}", file=sys.stderr)

    if as_json:
        print(
            json.dumps(
                {
                    "anchor_id": projection.anchor_id,
                    "entries": [
                        {
                            "id": b.id,
                            "date": b.date.isoformat(),
                            "description": b.entry.description,
                            "amount": str(b.amount),
                            "balance": str(b.balance),
                            "projected": b.projected,
                            "visible": b.visible,
                        }
                        for b in projection.entries
                    ],
                },
                indent=2,
            )
        )
        return 0

    out = Table(title=f"Projection through {horizon} days from {ref_day.isoformat()}")
    for col in ("Date", "Description", "Amount", "Balance", ""):
        out.add_column(col, justify="right" if col in ("Amount", "Balance") else "left")
    for b in projection.entries:
        style = "dim" if not b.visible else ("italic" if b.projected else None)
        marker = "*" if b.id == projection.anchor_id else ""
        out.add_row(
            b.date.isoformat(),
            b.entry.description,
            _fmt_amount(b.amount),
            _fmt_amount(b.balance),
            marker,
            style=style,
        )
    Console().print(out)
    return 0


def cmd_materialize(
    state_path: str,
    occurrence_id: str,
    *,
    today: str | None = None,
    horizon_days: int | None = None,
) -> int:
    """Turn one projected occurrence into a manual pending record in the state file."""

    from .occurrences import materialize_occurrence
    from .projection import generate_occurrences
    from .schemas import load_state, save_state
    from .settings import load_settings

    try:
        state = load_state(state_path)
        ref_day = _parse_today(today)
        horizon = (
            horizon_days if horizon_days is not None else load_settings().projection.horizon_days
        )
        dismissals = state.dismissal_set()
        occurrences = generate_occurrences(
            state.obligations_domain(),
            today=ref_day,
            horizon_days=horizon,
            dismissals=dismissals,
            hidden=frozenset(state.hidden),
        )
        occ = next((o for o in occurrences if o.id == occurrence_id), None)
        if occ is None:
            if dismissals.suppresses(occurrence_id):
                return _error(
                    f"occurrence {occurrence_id!r} is already {dismissals.state_of(occurrence_id)}"
                )
            return _error(f"No projected occurrence {occurrence_id!r} within the horizon")
        ob_account = next(
            (o.account for o in state.obligations if o.id == occ.obligation_id), None
        )
        record, updated = materialize_occurrence(occ, dismissals, account=ob_account)
        save_state(state_path, state.with_dismissals(updated).with_manual_record(record))
    except (ValidationError, json.JSONDecodeError) as e:
        return _error(f"Invalid state file '{state_path}': {e}")
    except (OSError, ValueError) as e:
        return _error(str(e))

    print(record.id)
    return 0


def cmd_dismiss(state_path: str, occurrence_ids: Sequence[str]) -> int:
    """Permanently suppress the given occurrence slots in the state file."""

    from .occurrences import dismiss_occurrence
    from .schemas import load_state, save_state

    try:
        state = load_state(state_path)
        dismissals = state.dismissal_set()
        for oid in occurrence_ids:
            dismissals = dismiss_occurrence(oid, dismissals)
        save_state(state_path, state.with_dismissals(dismissals))
    except (ValidationError, json.JSONDecodeError) as e:
        return _error(f"Invalid state file '{state_path}': {e}")
    except (OSError, ValueError) as e:
        return _error(str(e))

    for oid in occurrence_ids:
        print(oid)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank exports, detect recurring obligations and project running "
        "balances. Loads LEDGER_* settings from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a bank export (CSV, or JSON with a .json suffix)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # handlers report missing files themselves
)
STATE_OPTION: OptionInfo = typer.Option(
    "--state", help="Path to the ledger state JSON file", dir_okay=False
)
REQUIRED_STATE_OPTION: OptionInfo = typer.Option(
    ..., "--state", help="Path to the ledger state JSON file", dir_okay=False
)
ACCOUNT_KIND_OPTION: OptionInfo = typer.Option(
    "--account-kind",
    help="Account kind hint (asset or liability); overrides sign heuristics.",
)
TODAY_OPTION: OptionInfo = typer.Option(
    "--today", help="Reference date (YYYY-MM-DD); defaults to today."
)
HORIZON_OPTION: OptionInfo = typer.Option(
    "--horizon", min=0, help="Projection horizon in days (default LEDGER_HORIZON_DAYS)."
)
JSON_OPTION: OptionInfo = typer.Option("--json", help="Emit JSON instead of a table.")
LOG_LEVEL_OPTION: OptionInfo = typer.Option(
    "--log-level", help="Logging level (default LEDGER_ENGINE_LOG_LEVEL, else WARNING)."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


def _check_kind(account_kind: str | None) -> None:
    if account_kind is not None and account_kind not in ("asset", "liability"):
        raise typer.BadParameter("must be 'asset' or 'liability'", param_hint="--account-kind")


@app.command("ingest")
def ingest_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    account_kind: Annotated[str | None, ACCOUNT_KIND_OPTION] = None,
    as_json: Annotated[bool, JSON_OPTION] = False,
) -> None:
    """Parse an export and print normalized records."""

    _check_kind(account_kind)
    _exit(cmd_ingest(str(csv_path), account_kind=account_kind, as_json=as_json))


@app.command("detect")
def detect_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    state: Annotated[Path | None, STATE_OPTION] = None,
    as_json: Annotated[bool, JSON_OPTION] = False,
) -> None:
    """Suggest recurring obligations not already tracked in the state file."""

    _exit(cmd_detect(str(csv_path), state_path=str(state) if state else None, as_json=as_json))


@app.command("project")
def project_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    anchor: Annotated[
        str | None, typer.Option("--anchor", help="Trusted balance as of the latest record.")
    ] = None,
    state: Annotated[Path | None, STATE_OPTION] = None,
    horizon: Annotated[int | None, HORIZON_OPTION] = None,
    today: Annotated[str | None, TODAY_OPTION] = None,
    account_kind: Annotated[str | None, ACCOUNT_KIND_OPTION] = None,
    as_json: Annotated[bool, JSON_OPTION] = False,
) -> None:
    """Print running balances for imported, manual and projected entries."""

    _check_kind(account_kind)
    _exit(
        cmd_project(
            str(csv_path),
            anchor=anchor,
            state_path=str(state) if state else None,
            horizon_days=horizon,
            today=today,
            account_kind=account_kind,
            as_json=as_json,
        )
    )


@app.command("materialize")
def materialize_cmd(
    state: Annotated[Path, REQUIRED_STATE_OPTION],
    occurrence_id: Annotated[str, typer.Option("--occurrence-id", help="Projected slot id.")],
    today: Annotated[str | None, TODAY_OPTION] = None,
    horizon: Annotated[int | None, HORIZON_OPTION] = None,
) -> None:
    """Convert a projected occurrence into a manual pending record."""

    _exit(cmd_materialize(str(state), occurrence_id, today=today, horizon_days=horizon))


@app.command("dismiss")
def dismiss_cmd(
    state: Annotated[Path, REQUIRED_STATE_OPTION],
    occurrence_id: Annotated[
        list[str], typer.Option("--occurrence-id", help="Projected slot id (repeatable).")
    ],
) -> None:
    """Permanently suppress projected occurrence slots."""

    _exit(cmd_dismiss(str(state), occurrence_id))


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: Annotated[str | None, LOG_LEVEL_OPTION] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()

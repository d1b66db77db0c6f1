"""Pydantic DTOs for the JSON state file and CLI JSON output.

The engine itself works on the frozen dataclasses in :mod:`.models`; these
models only validate what crosses the process boundary and convert to and
from the domain types.
"""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .logging_setup import get_logger
from .models import (
    DEFAULT_CATEGORY,
    Cadence,
    RecurringObligation,
    TransactionRecord,
    to_cents,
)
from .occurrences import DismissalSet

_logger = get_logger("ledger_engine.schemas")

SCHEMA_VERSION = 1


class CadenceModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    frequency: Literal["weekly", "biweekly", "monthly", "quarterly", "yearly"]
    day_of_month: int | None = None
    week_of_month: Literal[1, 2, 3, 4, "last"] | None = None
    weekday: int | None = None

    def to_domain(self) -> Cadence:
        return Cadence(
            frequency=self.frequency,
            day_of_month=self.day_of_month,
            week_of_month=self.week_of_month,
            weekday=self.weekday,
        )

    @classmethod
    def from_domain(cls, cadence: Cadence) -> CadenceModel:
        return cls(
            frequency=cadence.frequency,
            day_of_month=cadence.day_of_month,
            week_of_month=cadence.week_of_month,
            weekday=cadence.weekday,
        )


class ObligationModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: str
    description: str
    amount: Decimal
    cadence: CadenceModel
    next_due: date
    category: str = DEFAULT_CATEGORY
    amount_type: Literal["fixed", "variable"] = "fixed"
    tolerance_pct: Decimal = Decimal("10")
    active: bool = True
    account: str | None = None

    @field_validator("id", "description")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be non-empty")
        return v

    @field_validator("amount")
    @classmethod
    def _cents(cls, v: Decimal) -> Decimal:
        return to_cents(v)

    def to_domain(self) -> RecurringObligation:
        return RecurringObligation(
            id=self.id,
            description=self.description,
            amount=self.amount,
            cadence=self.cadence.to_domain(),
            next_due=self.next_due,
            category=self.category,
            amount_type=self.amount_type,
            tolerance_pct=self.tolerance_pct,
            active=self.active,
            account=self.account,
        )

    @classmethod
    def from_domain(cls, ob: RecurringObligation) -> ObligationModel:
        return cls(
            id=ob.id,
            description=ob.description,
            amount=ob.amount,
            cadence=CadenceModel.from_domain(ob.cadence),
            next_due=ob.next_due,
            category=ob.category,
            amount_type=ob.amount_type,
            tolerance_pct=ob.tolerance_pct,
            active=ob.active,
            account=ob.account,
        )


class RecordModel(BaseModel):
    """Serialized :class:`~ledger_engine.models.TransactionRecord`."""

    model_config = ConfigDict(extra="forbid")

    id: str
    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    account: str | None = None
    pending: bool = False
    reconciled: bool = False
    manual: bool = False
    visible: bool = True
    source: str | None = None
    obligation_id: str | None = None

    @field_validator("amount")
    @classmethod
    def _cents(cls, v: Decimal) -> Decimal:
        return to_cents(v)

    def to_domain(self) -> TransactionRecord:
        return TransactionRecord(**self.model_dump())

    @classmethod
    def from_domain(cls, record: TransactionRecord) -> RecordModel:
        return cls(
            id=record.id,
            date=record.date,
            description=record.description,
            amount=record.amount,
            category=record.category,
            account=record.account,
            pending=record.pending,
            reconciled=record.reconciled,
            manual=record.manual,
            visible=record.visible,
            source=record.source,
            obligation_id=record.obligation_id,
        )


class LedgerState(BaseModel):
    """Top-level schema for a ledger state JSON file.

    Holds what the engine cannot recompute: obligations, per-slot occurrence
    state, hidden occurrence ids and manual records.
    """

    model_config = ConfigDict(extra="forbid")

    schema_version: int = SCHEMA_VERSION
    obligations: list[ObligationModel] = Field(default_factory=list)
    materialized: list[str] = Field(default_factory=list)
    dismissed: list[str] = Field(default_factory=list)
    hidden: list[str] = Field(default_factory=list)
    manual_records: list[RecordModel] = Field(default_factory=list)

    @field_validator("schema_version")
    @classmethod
    def _supported_version(cls, v: int) -> int:
        if v != SCHEMA_VERSION:
            raise ValueError(f"unsupported schema_version {v}; expected {SCHEMA_VERSION}")
        return v

    def obligations_domain(self) -> list[RecurringObligation]:
        return [o.to_domain() for o in self.obligations]

    def dismissal_set(self) -> DismissalSet:
        return DismissalSet.from_ids(materialized=self.materialized, dismissed=self.dismissed)

    def records_domain(self) -> list[TransactionRecord]:
        return [r.to_domain() for r in self.manual_records]

    def with_dismissals(self, dismissals: DismissalSet) -> LedgerState:
        return self.model_copy(
            update={
                "materialized": sorted(dismissals.materialized),
                "dismissed": sorted(dismissals.dismissed),
            }
        )

    def with_manual_record(self, record: TransactionRecord) -> LedgerState:
        return self.model_copy(
            update={"manual_records": [*self.manual_records, RecordModel.from_domain(record)]}
        )


def load_state(path: str | os.PathLike[str]) -> LedgerState:
    """Read and validate a state file. A missing file is an empty state."""

    p = Path(path)
    if not p.exists():
        _logger.info("State file %s not found; starting empty", os.fspath(p))
        return LedgerState()
    return LedgerState.model_validate_json(p.read_text(encoding="utf-8"))


def save_state(path: str | os.PathLike[str], state: LedgerState) -> None:
    """Write ``state`` atomically (temp file + replace)."""

    p = Path(path)
    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(state.model_dump_json(indent=2) + "\n", encoding="utf-8")
    os.replace(tmp, p)


__all__ = [
    "CadenceModel",
    "LedgerState",
    "ObligationModel",
    "RecordModel",
    "SCHEMA_VERSION",
    "load_state",
    "save_state",
]

"""Tunable configuration for ingest, detection, and projection.

Settings are plain frozen values passed into each operation; nothing here is
read implicitly by library code. Entrypoints build them with
:func:`load_settings`, which honors ``LEDGER_*`` environment variables (the
CLI loads a local ``.env`` first).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .logging_setup import get_logger

_logger = get_logger("ledger_engine.settings")


# Semantic field -> header synonyms, highest priority first. Resolved once per
# file (see ``ingest.columns.resolve_columns``).
DEFAULT_FIELD_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "date": (
            "Date",
            "Transaction Date",
            "Posted Date",
            "Post Date",
            "Posting Date",
            "Trans. Date",
            "Activity Date",
        ),
        "description": (
            "Description",
            "Payee",
            "Merchant",
            "Name",
            "Details",
            "Memo",
            "Desc",
            "Original Description",
        ),
        "secondary_description": ("Original Description", "Extended Details"),
        "amount": (
            "Amount",
            "Amount (USD)",
            "Transaction Amount",
            "Amount($)",
            "Amt",
        ),
        "outflow": ("Debit", "Withdrawal", "Withdrawals", "Debit Amount", "Outflow"),
        "inflow": ("Credit", "Deposit", "Deposits", "Credit Amount", "Inflow"),
        "category": ("Category", "Cat"),
        "status": ("Status", "Transaction Status"),
        "type": ("Type", "Transaction Type"),
    }
)


@dataclass(frozen=True, slots=True)
class IngestSettings:
    """Ingest tuning.

    ``payment_ratio_threshold`` is the fraction of "payment received" rows
    with a positive raw amount above which a shared-layout file is treated as
    a liability export and inverted. Ratios within ``ambiguity_margin`` of the
    threshold are reported as warnings.
    """

    payment_ratio_threshold: float = 0.05
    ambiguity_margin: float = 0.02
    field_aliases: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: DEFAULT_FIELD_ALIASES
    )

    def __post_init__(self) -> None:
        if not 0.0 <= self.payment_ratio_threshold <= 1.0:
            raise ValueError("payment_ratio_threshold must be within [0, 1]")
        if self.ambiguity_margin < 0.0:
            raise ValueError("ambiguity_margin must be non-negative")


@dataclass(frozen=True, slots=True)
class DetectionSettings:
    min_occurrences: int = 2
    income_confidence: int = 35
    expense_confidence: int = 50

    def __post_init__(self) -> None:
        if self.min_occurrences < 2:
            raise ValueError("min_occurrences must be at least 2")


@dataclass(frozen=True, slots=True)
class ProjectionSettings:
    horizon_days: int = 60
    max_workers: int = 4

    def __post_init__(self) -> None:
        if self.horizon_days < 0:
            raise ValueError("horizon_days must be non-negative")
        if self.max_workers < 1:
            raise ValueError("max_workers must be a positive integer")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    ingest: IngestSettings = field(default_factory=IngestSettings)
    detection: DetectionSettings = field(default_factory=DetectionSettings)
    projection: ProjectionSettings = field(default_factory=ProjectionSettings)


def _env_number(
    env: Mapping[str, str],
    name: str,
    default: int | float,
    cast: type,
    *,
    minimum: int | float | None = None,
    maximum: int | float | None = None,
) -> Any:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %r", name, raw, default)
        return default
    in_range = (minimum is None or value >= minimum) and (maximum is None or value <= maximum)
    if not in_range:
        _logger.warning("Ignoring out-of-range %s=%r; using %r", name, raw, default)
        return default
    return value


def load_settings(env: Mapping[str, str] | None = None) -> EngineSettings:
    """Build :class:`EngineSettings` from ``LEDGER_*`` environment variables.

    Unset, malformed or out-of-range values fall back to defaults (the last
    two are logged).
    """

    env = os.environ if env is None else env
    return EngineSettings(
        ingest=IngestSettings(
            payment_ratio_threshold=_env_number(
                env, "LEDGER_PAYMENT_RATIO_THRESHOLD", 0.05, float, minimum=0.0, maximum=1.0
            ),
            ambiguity_margin=_env_number(
                env, "LEDGER_AMBIGUITY_MARGIN", 0.02, float, minimum=0.0
            ),
        ),
        detection=DetectionSettings(
            income_confidence=_env_number(env, "LEDGER_INCOME_CONFIDENCE", 35, int),
            expense_confidence=_env_number(env, "LEDGER_EXPENSE_CONFIDENCE", 50, int),
        ),
        projection=ProjectionSettings(
            horizon_days=_env_number(env, "LEDGER_HORIZON_DAYS", 60, int, minimum=0),
            max_workers=_env_number(env, "LEDGER_MAX_WORKERS", 4, int, minimum=1),
        ),
    )


__all__ = [
    "DEFAULT_FIELD_ALIASES",
    "DetectionSettings",
    "EngineSettings",
    "IngestSettings",
    "ProjectionSettings",
    "load_settings",
]

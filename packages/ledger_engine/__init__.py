"""Ledger reconciliation and projection engine.

Import from :mod:`ledger_engine.api` for the stable surface; domain types
live in :mod:`ledger_engine.models`.
"""

__version__ = "0.1.0"

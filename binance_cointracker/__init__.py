"""Public interface for the ``binance_cointracker`` package.

Symbol re-exports only; see :mod:`binance_cointracker.api` for the entry
points and :mod:`binance_cointracker.engine` for how ledger rows are
correlated.
"""

from .api import convert_csv, convert_rows
from .classifier import DirectionInvariantError, classify, classify_row
from .engine import FieldAlreadySetError, correlate, merge, resolve_and_merge
from .ingest.adapters.binance_statement_csv import LedgerParseError
from .models import (
    Contribution,
    LegKind,
    Operation,
    RawRow,
    TransactionMap,
    TransactionRecord,
)

__all__ = [
    # API
    "convert_csv",
    "convert_rows",
    "classify",
    "classify_row",
    "correlate",
    "merge",
    "resolve_and_merge",
    # Errors
    "DirectionInvariantError",
    "FieldAlreadySetError",
    "LedgerParseError",
    # Models / types
    "Contribution",
    "LegKind",
    "Operation",
    "RawRow",
    "TransactionMap",
    "TransactionRecord",
]

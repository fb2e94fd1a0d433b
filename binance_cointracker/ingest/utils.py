"""Ingest helpers shared by the API and the CLI."""

from __future__ import annotations

import csv
from os import PathLike
from pathlib import Path

from ..logging_setup import get_logger
from ..models import RawRow
from .adapters.binance_statement_csv import to_raw_rows

logger = get_logger(__name__)


def load_raw_rows_from_csv(csv_path: str | PathLike[str]) -> list[RawRow]:
    """Read a Binance statement CSV fully and return its ledger entries in order.

    A UTF-8 byte order mark is tolerated. Raises ``csv.Error`` when the file
    holds no records at all (not even a header).
    """

    p = Path(csv_path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        records = list(csv.reader(f))
    if not records:
        raise csv.Error(f"CSV appears to be empty: {csv_path}")

    rows = list(to_raw_rows(records))
    logger.info("Read %d ledger rows from %s", len(rows), p)
    return rows


__all__ = ["load_raw_rows_from_csv"]

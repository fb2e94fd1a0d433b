"""CoinTracker CSV output.

Column order (exact):
``Date, Received Quantity, Received Currency, Sent Quantity, Sent Currency,
Fee Amount, Fee Currency, Tag``

``Remark`` is kept on every record but is not part of the CoinTracker import
format, so it is only written when explicitly requested.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from decimal import Decimal
from os import PathLike
from pathlib import Path
from typing import TextIO

from .logging_setup import get_logger
from .models import TransactionRecord

logger = get_logger(__name__)

COLUMNS: tuple[str, ...] = (
    "Date",
    "Received Quantity",
    "Received Currency",
    "Sent Quantity",
    "Sent Currency",
    "Fee Amount",
    "Fee Currency",
    "Tag",
)
REMARK_COLUMN = "Remark"


def format_quantity(value: Decimal | None) -> str:
    """Plain decimal text: no exponent, no trailing zeros (``100``, ``0.001``)."""

    if value is None:
        return ""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def to_output_row(record: TransactionRecord, *, include_remark: bool = False) -> list[str]:
    row = [
        record.date,
        format_quantity(record.received_quantity),
        record.received_currency or "",
        format_quantity(record.sent_quantity),
        record.sent_currency or "",
        format_quantity(record.fee_amount),
        record.fee_currency or "",
        record.tag or "",
    ]
    if include_remark:
        row.append(record.remark or "")
    return row


def write_records(
    records: Iterable[TransactionRecord],
    out: TextIO,
    *,
    include_remark: bool = False,
) -> int:
    """Write the header and one row per record to ``out``; return the row count."""

    writer = csv.writer(out, lineterminator="\n")
    header = [*COLUMNS, REMARK_COLUMN] if include_remark else list(COLUMNS)
    writer.writerow(header)
    count = 0
    for record in records:
        writer.writerow(to_output_row(record, include_remark=include_remark))
        count += 1
    return count


def write_records_csv(
    records: Sequence[TransactionRecord],
    csv_path: str | PathLike[str],
    *,
    include_remark: bool = False,
) -> int:
    """Write ``records`` to ``csv_path`` (UTF-8), replacing any existing file."""

    p = Path(csv_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        count = write_records(records, f, include_remark=include_remark)
    logger.info("Wrote %d records to %s", count, p)
    return count


__all__ = [
    "COLUMNS",
    "REMARK_COLUMN",
    "format_quantity",
    "to_output_row",
    "write_records",
    "write_records_csv",
]

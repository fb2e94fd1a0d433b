"""Adapter for Binance "Transaction History" statement CSV exports.

Columns are read by position, not by name:

``User_ID, UTC_Time, Account, Operation, Coin, Change, Remark``

The first record is the header and is discarded without inspection. Each
remaining record becomes a :class:`~binance_cointracker.models.RawRow`.

Failure mode
------------
Malformed timestamps, amounts, or records with too few columns raise
:class:`LedgerParseError` naming the offending CSV record. A missing
``Remark`` column is read as an empty remark.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation

from ...models import RawRow

# Positional column layout of the export.
COLUMNS = ("User_ID", "UTC_Time", "Account", "Operation", "Coin", "Change", "Remark")
_REQUIRED_COLUMNS = len(COLUMNS) - 1

# Older exports use a two-digit year.
_FALLBACK_TIME_FORMATS = ("%y-%m-%d %H:%M:%S", "%Y/%m/%d %H:%M:%S")


class LedgerParseError(ValueError):
    """A statement record could not be parsed into a ledger entry."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def parse_timestamp(raw: str) -> datetime:
    s = (raw or "").strip()
    if not s:
        raise ValueError("timestamp is empty")
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    for fmt in _FALLBACK_TIME_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"invalid timestamp: {raw!r}")


def parse_change(raw: str) -> Decimal:
    s = (raw or "").strip()
    if not s:
        raise ValueError("change is empty")
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid change: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid change: {raw!r}")
    return d


def _is_blank(record: Sequence[str]) -> bool:
    return all((v or "").strip() == "" for v in record)


def to_raw_rows(records: Iterable[Sequence[str]]) -> Iterator[RawRow]:
    """Convert CSV records (header included) into :class:`RawRow` objects.

    Blank records are skipped. Text fields are stripped of surrounding
    whitespace, except ``Remark``, which is kept verbatim because it is part
    of the correlation key for BNB conversions.
    """

    for line_number, record in enumerate(records, start=1):
        if line_number == 1 or _is_blank(record):
            continue
        if len(record) < _REQUIRED_COLUMNS:
            raise LedgerParseError(
                f"expected at least {_REQUIRED_COLUMNS} columns, got {len(record)}",
                line_number=line_number,
            )
        user_id, utc_time, account, operation, coin, change = record[:_REQUIRED_COLUMNS]
        remark = record[_REQUIRED_COLUMNS] if len(record) > _REQUIRED_COLUMNS else ""
        try:
            timestamp = parse_timestamp(utc_time)
            amount = parse_change(change)
        except ValueError as exc:
            raise LedgerParseError(str(exc), line_number=line_number) from exc

        yield RawRow(
            user_id=user_id.strip(),
            timestamp=timestamp,
            account=account.strip(),
            operation=operation.strip(),
            currency=coin.strip(),
            change=amount,
            remark=remark,
            line_number=line_number,
            utc_time=utc_time.strip(),
        )


__all__ = ["COLUMNS", "LedgerParseError", "parse_change", "parse_timestamp", "to_raw_rows"]

"""Correlate ledger entries into transaction pairs.

Binance writes each side of an economic event (the coin sent, the coin
received, the fee) as its own ledger row. Rows belonging together share a
timestamp, give or take one second, so rows are correlated on their epoch
second:

1. look for an existing transaction at ``s``, then ``s - 1``, then ``s + 1``;
2. otherwise start a new transaction keyed by ``s``.

"Small Assets Exchange BNB" conversions are the exception: many independent
conversions are booked at exactly the same second, so their key is the
candidate key from the steps above plus ``"|" + remark``, matched exactly.

Merging is additive: a row fills in one leg of the transaction and leaves the
others alone. Filling a leg that is already set means two rows were correlated
into one transaction that should not have been; in strict mode (the default)
that raises :class:`FieldAlreadySetError`.

The transaction map is an ordinary ``dict``, which preserves insertion order;
records are emitted in the order their keys were first created. Processing
order matters, so rows must be fed in file order.
"""

from __future__ import annotations

import calendar
import dataclasses
from collections.abc import Iterable
from datetime import datetime

from .classifier import classify_row
from .logging_setup import get_logger
from .models import Contribution, LegKind, Operation, RawRow, TransactionMap, TransactionRecord

logger = get_logger(__name__)

COMPOSITE_KEY_SEPARATOR = "|"
DATE_FORMAT = "%m/%d/%Y %H:%M:%S"

# leg -> (quantity field, currency field)
_LEG_FIELDS: dict[LegKind, tuple[str, str]] = {
    LegKind.SENT: ("sent_quantity", "sent_currency"),
    LegKind.RECEIVED: ("received_quantity", "received_currency"),
    LegKind.FEE: ("fee_amount", "fee_currency"),
}


class FieldAlreadySetError(ValueError):
    """Two ledger entries tried to fill the same leg of one transaction."""

    def __init__(self, message: str, *, key: str | None, field: str) -> None:
        super().__init__(message)
        self.key = key
        self.field = field


def epoch_seconds(timestamp: datetime) -> int:
    """Round ``timestamp`` to whole epoch seconds, half up.

    Naive timestamps are read as UTC; only differences between keys matter.
    """

    whole = calendar.timegm(timestamp.utctimetuple())
    return whole + (1 if timestamp.microsecond >= 500_000 else 0)


def format_date(timestamp: datetime) -> str:
    """Render ``MM/DD/YYYY HH:MM:SS`` in local time (naive values as-is)."""

    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone()
    return timestamp.strftime(DATE_FORMAT)


def resolve_key(seconds: int, transactions: TransactionMap) -> tuple[str, bool]:
    """Return ``(key, existing)`` for an epoch second.

    Tries the exact second, then one second earlier, then one second later.
    When none is present the key for ``seconds`` is returned with
    ``existing=False``.
    """

    for candidate in (seconds, seconds - 1, seconds + 1):
        key = str(candidate)
        if key in transactions:
            return key, True
    return str(seconds), False


def merge(
    record: TransactionRecord,
    contribution: Contribution,
    *,
    strict: bool = True,
    key: str | None = None,
) -> TransactionRecord:
    """Return ``record`` with the leg carried by ``contribution`` filled in.

    Fields not touched by the contribution are carried over unchanged.
    ``key`` only appears in error and warning messages.
    """

    contribution = contribution.resolved()
    if contribution.kind is LegKind.IGNORED:
        return record

    qty_field, cur_field = _LEG_FIELDS[contribution.kind]
    changes: dict[str, object] = {
        qty_field: contribution.quantity,
        cur_field: contribution.currency,
    }
    if contribution.tag is not None:
        changes["tag"] = contribution.tag

    existing_qty = getattr(record, qty_field)
    conflict: str | None = None
    if existing_qty is not None:
        conflict = (
            f"{contribution.kind.value} leg already set to "
            f"{existing_qty} {getattr(record, cur_field)}"
        )
    elif contribution.tag is not None and record.tag not in (None, contribution.tag):
        conflict = f"tag already set to {record.tag!r}"

    if conflict is not None:
        message = (
            f"Transaction {key or record.date} (legs: {', '.join(record.legs) or 'none'}): "
            f"{conflict}, new value {contribution.quantity} {contribution.currency}."
        )
        if strict:
            raise FieldAlreadySetError(message, key=key, field=qty_field)
        logger.warning("%s Overwriting (lenient mode).", message)

    return dataclasses.replace(record, **changes)


def resolve_and_merge(
    row: RawRow,
    contribution: Contribution,
    transactions: TransactionMap,
    *,
    strict: bool = True,
) -> TransactionMap:
    """Route one classified row into ``transactions`` and return the map.

    Ignored contributions leave the map untouched; no record is created for
    them.
    """

    if contribution.kind is LegKind.IGNORED:
        logger.debug("line %s: nothing to merge for %r", row.line_number, row.operation)
        return transactions

    key, existing = resolve_key(epoch_seconds(row.timestamp), transactions)

    if row.operation == Operation.SMALL_ASSETS_EXCHANGE_BNB:
        key = f"{key}{COMPOSITE_KEY_SEPARATOR}{row.remark}"
        existing = key in transactions

    if existing:
        record = transactions[key]
    else:
        record = TransactionRecord(date=format_date(row.timestamp), remark=row.remark)

    transactions[key] = merge(record, contribution, strict=strict, key=key)
    return transactions


def correlate(rows: Iterable[RawRow], *, strict: bool = True) -> list[TransactionRecord]:
    """Classify and correlate ``rows`` (in file order) into transaction pairs."""

    rows = list(rows)
    logger.info("Found %d ledger rows", len(rows))

    transactions: TransactionMap = {}
    for row in rows:
        transactions = resolve_and_merge(row, classify_row(row), transactions, strict=strict)

    logger.info("Transformed to %d records", len(transactions))
    return list(transactions.values())


__all__ = [
    "COMPOSITE_KEY_SEPARATOR",
    "DATE_FORMAT",
    "FieldAlreadySetError",
    "correlate",
    "epoch_seconds",
    "format_date",
    "merge",
    "resolve_and_merge",
    "resolve_key",
]

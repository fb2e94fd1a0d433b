"""Data models for converting a Binance ledger export into transaction pairs.

Three shapes flow through the converter:

- :class:`RawRow`: one typed ledger entry as read from the statement CSV.
- :class:`Contribution`: what a single ledger entry adds to a transaction
  (which leg, how much of which coin, and an optional tag).
- :class:`TransactionRecord`: one accumulated economic event, i.e. the unit
  written to the CoinTracker CSV.

Amounts are kept as :class:`~decimal.Decimal` end to end; nothing here is
rounded or converted to float.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import TypeAlias


class Operation(StrEnum):
    """Operation names that the converter knows how to place."""

    AIRDROP_ASSETS = "Airdrop Assets"
    BUY = "Buy"
    COMMISSION_HISTORY = "Commission History"
    COMMISSION_REBATE = "Commission Rebate"
    DEPOSIT = "Deposit"
    DISTRIBUTION = "Distribution"
    FEE = "Fee"
    SELL = "Sell"
    SMALL_ASSETS_EXCHANGE_BNB = "Small Assets Exchange BNB"
    STAKING_REWARDS = "Staking Rewards"
    TRANSACTION_RELATED = "Transaction Related"
    WITHDRAW = "Withdraw"


class LegKind(StrEnum):
    SENT = "sent"
    RECEIVED = "received"
    FEE = "fee"
    # Direction is only known from the sign of the original change.
    AMBIGUOUS = "ambiguous"
    IGNORED = "ignored"


TAG_STAKED = "staked"
TAG_AIRDROP = "airdrop"


@dataclass(frozen=True, slots=True)
class RawRow:
    """A single ledger entry from the statement export.

    ``operation`` is kept as the raw string so that operations outside
    :class:`Operation` survive parsing and can be reported and skipped later.
    ``line_number`` is the 1-based CSV record number (the header is record 1).
    ``utc_time`` is the timestamp text exactly as exported, used in error
    messages; it is empty for rows built in code.
    """

    user_id: str
    timestamp: datetime
    account: str
    operation: str
    currency: str
    change: Decimal
    remark: str = ""
    line_number: int | None = None
    utc_time: str = ""


@dataclass(frozen=True, slots=True)
class Contribution:
    """The classified effect of one ledger entry on a transaction.

    ``quantity`` is always non-negative. ``change`` retains the signed source
    amount; it decides the direction of an ``AMBIGUOUS`` leg at merge time.
    """

    kind: LegKind
    quantity: Decimal | None = None
    currency: str | None = None
    tag: str | None = None
    change: Decimal | None = None

    @classmethod
    def ignored(cls) -> Contribution:
        return cls(kind=LegKind.IGNORED)

    def resolved(self) -> Contribution:
        """Return this contribution with an ambiguous direction made explicit."""

        if self.kind is not LegKind.AMBIGUOUS:
            return self
        if self.change is None:
            raise ValueError("ambiguous contribution carries no signed change")
        # A zero change is booked as received, like any non-negative one.
        kind = LegKind.SENT if self.change < 0 else LegKind.RECEIVED
        return Contribution(
            kind=kind,
            quantity=self.quantity,
            currency=self.currency,
            tag=self.tag,
            change=self.change,
        )


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """One transaction pair in CoinTracker terms.

    Each of the three (quantity, currency) pairs is either fully set or fully
    ``None``. ``remark`` comes from the row that created the record and is
    never replaced.
    """

    date: str
    received_quantity: Decimal | None = None
    received_currency: str | None = None
    sent_quantity: Decimal | None = None
    sent_currency: str | None = None
    fee_amount: Decimal | None = None
    fee_currency: str | None = None
    tag: str | None = None
    remark: str | None = None

    @property
    def legs(self) -> tuple[str, ...]:
        """Names of the populated field pairs, in output column order."""

        names = []
        if self.received_quantity is not None:
            names.append("received")
        if self.sent_quantity is not None:
            names.append("sent")
        if self.fee_amount is not None:
            names.append("fee")
        return tuple(names)


# Ordered map from correlation key to record. Insertion order is output order.
TransactionMap: TypeAlias = dict[str, TransactionRecord]


__all__ = [
    "Contribution",
    "LegKind",
    "Operation",
    "RawRow",
    "TAG_AIRDROP",
    "TAG_STAKED",
    "TransactionMap",
    "TransactionRecord",
]

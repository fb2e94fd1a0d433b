"""Classify Binance ledger entries into transaction legs.

Binance encodes direction purely by the sign of ``Change``. Most operations
have a fixed direction, which is asserted here: a sign that contradicts the
operation means the export no longer looks like what this converter was built
for, and the run must stop rather than emit a wrong pair.

Operations not listed in :class:`~binance_cointracker.models.Operation` are
reported and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .logging_setup import get_logger
from .models import TAG_AIRDROP, TAG_STAKED, Contribution, LegKind, Operation, RawRow

logger = get_logger(__name__)


class DirectionInvariantError(ValueError):
    """A ledger entry's sign contradicts the direction of its operation."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        change: Decimal,
        currency: str,
        timestamp: datetime | str | None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.change = change
        self.currency = currency
        self.timestamp = timestamp


@dataclass(frozen=True, slots=True)
class _Rule:
    label: str
    negative: bool
    kind: LegKind
    tag: str | None = None


_FIXED_DIRECTION: dict[str, _Rule] = {
    Operation.TRANSACTION_RELATED: _Rule("Trade change", True, LegKind.SENT),
    Operation.SELL: _Rule("Trade change", True, LegKind.SENT),
    Operation.FEE: _Rule("Fee change", True, LegKind.FEE),
    Operation.BUY: _Rule("Buy change", False, LegKind.RECEIVED),
    Operation.DEPOSIT: _Rule("Deposit", False, LegKind.RECEIVED),
    Operation.WITHDRAW: _Rule("Withdrawal", True, LegKind.SENT),
    Operation.STAKING_REWARDS: _Rule("Stake", False, LegKind.RECEIVED, TAG_STAKED),
    Operation.COMMISSION_HISTORY: _Rule("Stake", False, LegKind.RECEIVED, TAG_STAKED),
    Operation.COMMISSION_REBATE: _Rule("Stake", False, LegKind.RECEIVED, TAG_STAKED),
}

_AIRDROPS = frozenset({Operation.DISTRIBUTION, Operation.AIRDROP_ASSETS})


def classify(
    operation: str,
    change: Decimal,
    currency: str,
    *,
    timestamp: datetime | str | None = None,
) -> Contribution:
    """Return the contribution of one ledger entry.

    Raises :class:`DirectionInvariantError` when ``change`` has the wrong sign
    for ``operation``. ``timestamp`` is only used in that error message.
    """

    quantity = abs(change)

    rule = _FIXED_DIRECTION.get(operation)
    if rule is not None:
        ok = change < 0 if rule.negative else change > 0
        if not ok:
            direction = "negative" if rule.negative else "positive"
            raise DirectionInvariantError(
                f"{rule.label} should be {direction} ({operation}). "
                f"Received {change} for {currency} transaction on {timestamp}.",
                operation=operation,
                change=change,
                currency=currency,
                timestamp=timestamp,
            )
        return Contribution(
            kind=rule.kind, quantity=quantity, currency=currency, tag=rule.tag, change=change
        )

    if operation in _AIRDROPS:
        # A negative airdrop shows up when Binance sells off a delisted token;
        # it is recorded as a plain send.
        if change < 0:
            return Contribution(
                kind=LegKind.SENT, quantity=quantity, currency=currency, change=change
            )
        return Contribution(
            kind=LegKind.RECEIVED,
            quantity=quantity,
            currency=currency,
            tag=TAG_AIRDROP,
            change=change,
        )

    if operation == Operation.SMALL_ASSETS_EXCHANGE_BNB:
        return Contribution(
            kind=LegKind.AMBIGUOUS, quantity=quantity, currency=currency, change=change
        )

    logger.info("ignored operation %r (%s %s on %s)", operation, change, currency, timestamp)
    return Contribution.ignored()


def classify_row(row: RawRow) -> Contribution:
    """Classify a parsed :class:`RawRow`."""

    # Prefer the exported text so error messages quote the source verbatim.
    timestamp = row.utc_time or row.timestamp
    return classify(row.operation, row.change, row.currency, timestamp=timestamp)


__all__ = ["DirectionInvariantError", "classify", "classify_row"]

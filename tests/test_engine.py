import time
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from binance_cointracker import (
    FieldAlreadySetError,
    RawRow,
    TransactionRecord,
    classify_row,
    correlate,
    merge,
    resolve_and_merge,
)
from binance_cointracker.engine import epoch_seconds, format_date, resolve_key
from binance_cointracker.models import Contribution, LegKind


def _row(operation, change, coin, when, remark=""):
    if isinstance(when, str):
        when = datetime.fromisoformat(when)
    return RawRow(
        user_id="1",
        timestamp=when,
        account="Spot",
        operation=operation,
        currency=coin,
        change=Decimal(change),
        remark=remark,
    )


def test_deposit_creates_single_received_record():
    records = correlate([_row("Deposit", "100", "USD", "2023-01-01 00:00:00")])

    assert records == [
        TransactionRecord(
            date="01/01/2023 00:00:00",
            received_quantity=Decimal("100"),
            received_currency="USD",
            remark="",
        )
    ]


def test_trade_legs_and_fee_merge_into_one_record():
    records = correlate(
        [
            _row("Transaction Related", "-250.5", "USDT", "2023-03-04 10:20:30"),
            _row("Buy", "0.01", "BTC", "2023-03-04 10:20:30"),
            _row("Fee", "-0.00001", "BTC", "2023-03-04 10:20:30"),
        ]
    )

    assert len(records) == 1
    r = records[0]
    assert (r.sent_quantity, r.sent_currency) == (Decimal("250.5"), "USDT")
    assert (r.received_quantity, r.received_currency) == (Decimal("0.01"), "BTC")
    assert (r.fee_amount, r.fee_currency) == (Decimal("0.00001"), "BTC")


@pytest.mark.parametrize("fee_time", ["2023-03-04 10:20:31", "2023-03-04 10:20:29"])
def test_sell_and_fee_one_second_apart_share_a_record(fee_time):
    records = correlate(
        [
            _row("Sell", "-1", "ETH", "2023-03-04 10:20:30"),
            _row("Fee", "-0.5", "USDT", fee_time),
        ]
    )

    assert len(records) == 1
    assert records[0].sent_currency == "ETH"
    assert records[0].fee_currency == "USDT"
    assert records[0].date == "03/04/2023 10:20:30"


def test_rows_two_seconds_apart_are_separate_records():
    records = correlate(
        [
            _row("Sell", "-1", "ETH", "2023-03-04 10:20:30"),
            _row("Fee", "-0.5", "USDT", "2023-03-04 10:20:32"),
        ]
    )

    assert [r.legs for r in records] == [("sent",), ("fee",)]


def test_exact_second_wins_over_neighbours():
    transactions = {}
    transactions = resolve_and_merge(
        _row("Deposit", "1", "BTC", "2023-01-01 00:00:01"),
        Contribution(kind=LegKind.RECEIVED, quantity=Decimal("1"), currency="BTC"),
        transactions,
    )
    transactions = resolve_and_merge(
        _row("Deposit", "2", "ETH", "2023-01-01 00:00:03"),
        Contribution(kind=LegKind.RECEIVED, quantity=Decimal("2"), currency="ETH"),
        transactions,
    )

    seconds = epoch_seconds(datetime(2023, 1, 1, 0, 0, 2))
    # Both neighbours exist; the earlier second is tried first.
    assert resolve_key(seconds, transactions) == (str(seconds - 1), True)
    assert resolve_key(seconds + 1, transactions) == (str(seconds + 1), True)
    assert resolve_key(seconds + 10, transactions) == (str(seconds + 10), False)


def test_bnb_conversions_with_different_remarks_stay_separate():
    when = "2022-06-01 08:00:00"
    records = correlate(
        [
            _row("Small Assets Exchange BNB", "-10", "TRX", when, remark="conversion A"),
            _row("Small Assets Exchange BNB", "-3", "ADA", when, remark="conversion B"),
        ]
    )

    assert len(records) == 2
    assert (records[0].sent_quantity, records[0].sent_currency) == (Decimal("10"), "TRX")
    assert records[0].legs == ("sent",)
    assert (records[1].sent_quantity, records[1].sent_currency) == (Decimal("3"), "ADA")
    assert records[1].legs == ("sent",)


def test_bnb_conversion_with_same_remark_merges_by_sign():
    when = "2022-06-01 08:00:00"
    records = correlate(
        [
            _row("Small Assets Exchange BNB", "-10", "TRX", when, remark="conv"),
            _row("Small Assets Exchange BNB", "0.002", "BNB", when, remark="conv"),
        ]
    )

    assert len(records) == 1
    r = records[0]
    assert (r.sent_quantity, r.sent_currency) == (Decimal("10"), "TRX")
    assert (r.received_quantity, r.received_currency) == (Decimal("0.002"), "BNB")
    assert r.remark == "conv"


def test_bnb_conversion_does_not_inherit_plain_record_at_same_second():
    when = "2022-06-01 08:00:00"
    records = correlate(
        [
            _row("Deposit", "5", "USDT", when),
            _row("Small Assets Exchange BNB", "0.1", "BNB", when, remark="conv"),
        ]
    )

    assert len(records) == 2
    assert records[0].legs == ("received",)
    assert records[0].received_currency == "USDT"
    assert records[1].received_currency == "BNB"
    assert records[1].remark == "conv"


def test_bnb_composite_key_uses_neighbouring_second():
    transactions = {}
    first = _row("Buy", "1", "BTC", "2022-06-01 08:00:00")
    transactions = resolve_and_merge(first, classify_row(first), transactions)
    bnb = _row("Small Assets Exchange BNB", "-1", "DOGE", "2022-06-01 08:00:01", remark="r")
    transactions = resolve_and_merge(bnb, classify_row(bnb), transactions)

    base = str(epoch_seconds(first.timestamp))
    assert list(transactions) == [base, f"{base}|r"]


def test_airdrop_records():
    records = correlate(
        [
            _row("Airdrop Assets", "-4", "BCPT", "2021-01-01 00:00:00"),
            _row("Distribution", "4", "BCPT", "2021-02-01 00:00:00"),
        ]
    )

    assert (records[0].sent_quantity, records[0].sent_currency, records[0].tag) == (
        Decimal("4"),
        "BCPT",
        None,
    )
    assert (records[1].received_quantity, records[1].received_currency, records[1].tag) == (
        Decimal("4"),
        "BCPT",
        "airdrop",
    )


def test_unknown_operation_creates_no_record():
    rows = [
        _row("Deposit", "1", "BTC", "2021-01-01 00:00:00"),
        _row("Savings Interest", "0.1", "BTC", "2021-01-05 00:00:00"),
        _row("Savings Interest", "0.1", "BTC", "2021-01-01 00:00:00"),
    ]
    records = correlate(rows)

    assert len(records) == 1
    assert records[0].received_quantity == Decimal("1")


def test_output_order_is_first_creation_order():
    records = correlate(
        [
            _row("Deposit", "1", "BTC", "2021-01-02 00:00:00"),
            _row("Deposit", "2", "ETH", "2021-01-01 00:00:00"),
            _row("Withdraw", "-1", "BTC", "2021-01-02 00:00:01"),
        ]
    )

    assert [r.received_currency for r in records] == ["BTC", "ETH"]
    assert records[0].sent_currency == "BTC"


def test_remark_is_kept_from_creating_row():
    records = correlate(
        [
            _row("Sell", "-1", "ETH", "2021-01-01 00:00:00", remark="first"),
            _row("Buy", "2000", "USDT", "2021-01-01 00:00:00", remark="second"),
        ]
    )

    assert records[0].remark == "first"


def test_duplicate_leg_is_an_error_in_strict_mode():
    rows = [
        _row("Sell", "-1", "ETH", "2021-01-01 00:00:00"),
        _row("Transaction Related", "-2", "ETH", "2021-01-01 00:00:01"),
    ]

    with pytest.raises(FieldAlreadySetError) as excinfo:
        correlate(rows)
    assert excinfo.value.field == "sent_quantity"
    assert "(legs: sent)" in str(excinfo.value)


def test_duplicate_leg_overwrites_in_lenient_mode(caplog):
    caplog.set_level("WARNING", logger="binance_cointracker")
    rows = [
        _row("Sell", "-1", "ETH", "2021-01-01 00:00:00"),
        _row("Transaction Related", "-2", "ETH", "2021-01-01 00:00:01"),
    ]

    records = correlate(rows, strict=False)

    assert len(records) == 1
    assert records[0].sent_quantity == Decimal("2")
    assert "Overwriting" in caplog.text


def test_merge_is_additive_and_returns_new_record():
    base = TransactionRecord(
        date="01/01/2021 00:00:00", received_quantity=Decimal("1"), received_currency="BTC"
    )
    fee = Contribution(kind=LegKind.FEE, quantity=Decimal("0.1"), currency="BNB")

    merged = merge(base, fee)

    assert merged is not base
    assert base.fee_amount is None
    assert merged.received_quantity == Decimal("1")
    assert merged.received_currency == "BTC"
    assert (merged.fee_amount, merged.fee_currency) == (Decimal("0.1"), "BNB")


def test_conflicting_tag_is_rejected():
    base = TransactionRecord(
        date="01/01/2021 00:00:00",
        sent_quantity=Decimal("1"),
        sent_currency="BCPT",
        tag="staked",
    )
    airdrop = Contribution(
        kind=LegKind.RECEIVED, quantity=Decimal("1"), currency="BCPT", tag="airdrop"
    )

    with pytest.raises(FieldAlreadySetError):
        merge(base, airdrop)


def test_sub_second_timestamps_round_half_up():
    assert epoch_seconds(datetime(1970, 1, 1, 0, 0, 1, 499_999)) == 1
    assert epoch_seconds(datetime(1970, 1, 1, 0, 0, 1, 500_000)) == 2


def test_format_date_is_zero_padded_24_hour():
    assert format_date(datetime(2023, 2, 3, 4, 5, 6)) == "02/03/2023 04:05:06"
    assert format_date(datetime(2023, 12, 31, 23, 59, 59, 900_000)) == "12/31/2023 23:59:59"


def test_aware_timestamps_match_on_the_same_instant():
    records = correlate(
        [
            _row("Sell", "-1", "ETH", datetime(2023, 1, 1, 12, 0, 0, tzinfo=UTC)),
            _row("Fee", "-0.1", "BNB", "2023-01-01T13:00:01+01:00"),
        ]
    )

    assert len(records) == 1
    assert records[0].legs == ("sent", "fee")


@pytest.fixture
def new_york_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is unavailable on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_aware_timestamps_render_in_local_time(new_york_tz):
    assert format_date(datetime(2023, 1, 1, 12, tzinfo=UTC)) == "01/01/2023 07:00:00"

    records = correlate(
        [
            _row("Sell", "-1", "ETH", datetime(2023, 1, 1, 12, 0, 0, tzinfo=UTC)),
            _row("Fee", "-0.1", "BNB", "2023-01-01T13:00:01+01:00"),
        ]
    )

    assert len(records) == 1
    assert records[0].date == "01/01/2023 07:00:00"


def test_naive_timestamps_ignore_local_zone(new_york_tz):
    records = correlate([_row("Deposit", "100", "USD", "2023-01-01 00:00:00")])

    assert records[0].date == "01/01/2023 00:00:00"

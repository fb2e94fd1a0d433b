"""Public API for converting Binance statements into CoinTracker pairs.

:func:`convert_rows` is the pure, in-memory transform. :func:`convert_csv`
brackets it with the file read and the file write; the output file is only
opened once correlation has finished, so a fatal error leaves no partial file
behind.
"""

from __future__ import annotations

from collections.abc import Iterable
from os import PathLike

from .engine import correlate
from .export import write_records_csv
from .ingest.utils import load_raw_rows_from_csv
from .models import RawRow, TransactionRecord


def convert_rows(rows: Iterable[RawRow], *, strict: bool = True) -> list[TransactionRecord]:
    """Correlate ledger entries into transaction records, in first-seen order.

    Parameters
    ----------
    rows:
        Ledger entries in original file order.
    strict:
        When ``True`` (default), a second entry targeting an already-filled leg
        of a transaction raises
        :class:`~binance_cointracker.engine.FieldAlreadySetError`. When
        ``False`` the later entry wins and a warning is logged.

    Raises
    ------
    DirectionInvariantError
        An entry's sign contradicts its operation.
    FieldAlreadySetError
        See ``strict``.
    """

    return correlate(rows, strict=strict)


def convert_csv(
    input_path: str | PathLike[str],
    output_path: str | PathLike[str],
    *,
    strict: bool = True,
    include_remark: bool = False,
) -> list[TransactionRecord]:
    """Read ``input_path``, convert it, write ``output_path``; return the records."""

    rows = load_raw_rows_from_csv(input_path)
    records = convert_rows(rows, strict=strict)
    write_records_csv(records, output_path, include_remark=include_remark)
    return records


__all__ = ["convert_csv", "convert_rows"]

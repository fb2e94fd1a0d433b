# ruff: noqa: I001
"""CLI for the ``binance_cointracker`` package.

Typer-based console interface around :func:`binance_cointracker.api.convert_csv`.
A ``.env`` in the working directory is loaded with ``python-dotenv`` (without
overriding variables already set) before logging is configured, so
``BINANCE_COINTRACKER_LOG_LEVEL``, ``BINANCE_COINTRACKER_INPUT`` and
``BINANCE_COINTRACKER_OUTPUT`` may live there.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .classifier import DirectionInvariantError
from .engine import FieldAlreadySetError
from .ingest.adapters.binance_statement_csv import LedgerParseError
from .logging_setup import configure_logging


DEFAULT_INPUT = Path("input.csv")
DEFAULT_OUTPUT = Path("output.csv")


def cmd_convert(
    csv_path: str | Path,
    output_path: str | Path,
    *,
    strict: bool = True,
    include_remark: bool = False,
) -> int:
    """Convert a Binance statement CSV into a CoinTracker CSV.

    Errors are written to stderr and a non-zero exit status is returned;
    nothing is written to ``output_path`` in that case. Returns ``0`` on
    success.
    """

    from .api import convert_csv

    try:
        convert_csv(csv_path, output_path, strict=strict, include_remark=include_remark)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except PermissionError as e:
        print(f"Error: Permission denied: {e.filename or csv_path}", file=sys.stderr)
        return 1
    except (csv.Error, LedgerParseError) as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1
    except DirectionInvariantError as e:
        print(f"Error: Unexpected sign in ledger: {e}", file=sys.stderr)
        return 1
    except FieldAlreadySetError as e:
        print(f"Error: Conflicting ledger rows: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: I/O failure: {e}", file=sys.stderr)
        return 1

    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Convert a Binance transaction history CSV into CoinTracker's "
        "transaction CSV import format."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    envvar="BINANCE_COINTRACKER_INPUT",
    help="Path to the Binance statement CSV.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)

OUTPUT_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--output-path",
    envvar="BINANCE_COINTRACKER_OUTPUT",
    help="Where to write the CoinTracker CSV (overwritten).",
    dir_okay=False,
    file_okay=True,
)


@app.command("convert")
def convert_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION] = DEFAULT_INPUT,
    output_path: Annotated[Path, OUTPUT_PATH_OPTION] = DEFAULT_OUTPUT,
    *,
    include_remark: bool = typer.Option(
        False, help="Append the Binance remark as a trailing 'Remark' column."
    ),
    lenient: bool = typer.Option(
        False,
        help="Let a later row overwrite an already-filled leg instead of failing.",
    ),
) -> None:
    """Convert a statement CSV and write the CoinTracker CSV."""

    code = cmd_convert(
        csv_path,
        output_path,
        strict=not lenient,
        include_remark=include_remark,
    )
    if code != 0:
        raise typer.Exit(code)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to BINANCE_COINTRACKER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Load ``.env`` and configure logging before running a subcommand."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


def main() -> None:
    """Console-script entrypoint."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()

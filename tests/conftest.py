"""Pytest configuration for test isolation.

The CLI reads ``BINANCE_COINTRACKER_*`` variables (possibly from a developer's
``.env``) and installs a stream handler on the package logger. Both leak
between tests, so each test starts from a clean environment and a logger that
propagates to the root (where ``caplog`` listens).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

import binance_cointracker.logging_setup as logging_setup


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "BINANCE_COINTRACKER_LOG_LEVEL",
        "BINANCE_COINTRACKER_INPUT",
        "BINANCE_COINTRACKER_OUTPUT",
    ):
        # setenv first so monkeypatch records the variable and also undoes
        # values that load_dotenv writes during the test.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("binance_cointracker")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logging_setup._handler = None

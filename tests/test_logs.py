from __future__ import annotations

import logging
import re
from pathlib import Path

import pytest
from rich.console import Console

from stdfprr.logs import ROOT_LOGGER, configure_logging, parse_level, shutdown_logging

LINE_RE = re.compile(r"^\[\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}\.\d{3}\] \[ERROR   \] \[scanner\] boom$")


@pytest.fixture(autouse=True)
def _teardown():
    yield
    shutdown_logging()


def test_file_line_format(tmp_path: Path) -> None:
    log_file = tmp_path / "x.log"
    configure_logging("DEBUG", str(log_file), console=Console(quiet=True))
    logging.getLogger("stdfprr.core.scanner").error("boom")
    shutdown_logging()
    assert LINE_RE.match(log_file.read_text().strip())


def test_level_filtering(tmp_path: Path) -> None:
    log_file = tmp_path / "x.log"
    configure_logging("WARNING", str(log_file), console=Console(quiet=True))
    logging.getLogger("stdfprr.core.extract").info("quiet")
    logging.getLogger("stdfprr.core.extract").warning("loud")
    shutdown_logging()
    text = log_file.read_text()
    assert "loud" in text and "quiet" not in text


def test_reconfigure_replaces_handlers() -> None:
    console = Console(quiet=True)
    configure_logging("INFO", console=console)
    configure_logging("INFO", console=console)
    assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1


def test_shutdown_restores_propagation() -> None:
    configure_logging("INFO", console=Console(quiet=True))
    assert logging.getLogger(ROOT_LOGGER).propagate is False
    shutdown_logging()
    logger = logging.getLogger(ROOT_LOGGER)
    assert logger.propagate is True
    assert logger.handlers == []


def test_parse_level() -> None:
    assert parse_level("debug") == logging.DEBUG
    assert parse_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError):
        parse_level("chatty")

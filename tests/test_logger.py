"""Tests for logging setup."""

import sys

import pytest
from loguru import logger

from riveripam.models.enums import LogLevel
from riveripam.utils.logger import configure_logging, format_traceback, get_logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.remove()
    logger.configure(extra={})
    logger.add(sys.stderr, level="WARNING")


def test_file_sink_renders_component(tmp_path):
    log_file = tmp_path / "ipam.log"
    configure_logging(LogLevel.DEBUG, str(log_file))

    get_logger("riveripam.store.ipam").debug("reserved 10.0.0.1")
    logger.info("no component bound")

    lines = log_file.read_text().splitlines()
    assert "riveripam.store.ipam - reserved 10.0.0.1" in lines[0]
    assert "riveripam - no component bound" in lines[1]


def test_level_filters_records(tmp_path):
    log_file = tmp_path / "ipam.log"
    configure_logging(LogLevel.WARNING, str(log_file))

    log = get_logger("test")
    log.info("hidden")
    log.warning("shown")

    content = log_file.read_text()
    assert "hidden" not in content
    assert "shown" in content


def test_format_traceback():
    try:
        raise ValueError("bad pool")
    except ValueError as e:
        rendered = format_traceback(e)

    assert rendered.startswith("Traceback")
    assert "ValueError: bad pool" in rendered

"""Unit tests for logging setup."""

import logging

import pytest
import structlog

from mcp_sentry.log_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_logs_go_to_stderr(capsys):
    """Test that log output never reaches stdout."""
    configure_logging("info")

    structlog.get_logger("test").info("hello from the logger", answer=42)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "hello from the logger" in captured.err
    assert "answer=42" in captured.err


def test_level_filtering(capsys):
    configure_logging("warning")

    structlog.get_logger("test").info("filtered out")
    structlog.get_logger("test").warning("kept")

    err = capsys.readouterr().err
    assert "filtered out" not in err
    assert "kept" in err


def test_unknown_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    configure_logging()

    assert structlog.get_config()["wrapper_class"] is structlog.make_filtering_bound_logger(logging.INFO)

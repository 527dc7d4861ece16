"""Tests for log.py — structlog routed through stdlib logging."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from hexterrain.log import configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def _record(caplog, name):
    return next(r for r in caplog.records if r.name == name)


def test_json_events_carry_fields(caplog):
    configure_logging("INFO", json=True)
    caplog.set_level(logging.INFO)
    structlog.get_logger("hexterrain.test_json").info("chunks requested", count=3)

    payload = json.loads(_record(caplog, "hexterrain.test_json").getMessage())
    assert payload["event"] == "chunks requested"
    assert payload["count"] == 3
    assert payload["level"] == "info"
    assert payload["logger"] == "hexterrain.test_json"
    assert "timestamp" in payload


def test_console_renderer_shows_key_values(caplog):
    configure_logging("DEBUG")
    caplog.set_level(logging.DEBUG)
    structlog.get_logger("hexterrain.test_console").warning("chunks unloaded", count=2)

    record = _record(caplog, "hexterrain.test_console")
    assert record.levelno == logging.WARNING
    assert "chunks unloaded" in record.getMessage()
    assert "count=2" in record.getMessage()

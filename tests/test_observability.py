from __future__ import annotations

import logging

import pytest

from tsmeta.config import get_settings
from tsmeta.metrics import observability
from tsmeta.metrics.observability import resolve_log_level, timed


def test_log_level_names_and_numbers():
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(logging.WARNING) == logging.WARNING
    with pytest.raises(ValueError):
        resolve_log_level("chatty")


def test_log_level_defaults_to_settings(monkeypatch):
    monkeypatch.setattr(observability, "get_settings", lambda: get_settings({"log_level": "error"}))
    assert resolve_log_level() == logging.ERROR


def test_timed_reports_duration_even_when_block_raises():
    durations: list[float] = []
    with pytest.raises(RuntimeError):
        with timed(durations.append):
            raise RuntimeError("boom")
    assert len(durations) == 1
    assert durations[0] >= 0.0

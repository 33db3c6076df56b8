from __future__ import annotations

import pytest

from config import Settings
from engine.template_logger import TemplateLogger


def _no_settings_lookup():
    raise AssertionError("settings looked up after logging was configured")


def test_configured_logger_does_not_reload_settings(monkeypatch) -> None:
    TemplateLogger("Setup", Settings())
    monkeypatch.setattr("engine.template_logger.get_settings", _no_settings_lookup)

    log = TemplateLogger("Pagination")

    assert log.component == "Pagination"


def test_step_timer_logs_and_propagates_failures() -> None:
    log = TemplateLogger("Steps", Settings())

    with pytest.raises(ValueError):
        with log.step_start("Failing step"):
            raise ValueError("boom")

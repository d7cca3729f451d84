import io
import logging

import pytest

from export_templates.logging_setup import configure_logging, get_logger, resolve_level


def test_explicit_levels():
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" 15 ") == 15
    assert resolve_level(logging.ERROR) == logging.ERROR


def test_env_level_used_when_unset(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPORT_TEMPLATES_LOG_LEVEL", "info")
    assert resolve_level(None) == logging.INFO
    assert resolve_level("error") == logging.ERROR


def test_unknown_levels_fall_through(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPORT_TEMPLATES_LOG_LEVEL", "chatty")
    assert resolve_level("loud") == logging.WARNING
    monkeypatch.setenv("EXPORT_TEMPLATES_LOG_LEVEL", "debug")
    assert resolve_level("loud") == logging.DEBUG


def test_configure_logging_rebinds_one_handler():
    first, second = io.StringIO(), io.StringIO()
    configure_logging("INFO", stream=first)
    configure_logging("DEBUG", stream=second)

    pkg = logging.getLogger("export_templates")
    assert len([h for h in pkg.handlers if not isinstance(h, logging.NullHandler)]) == 1
    assert pkg.level == logging.DEBUG

    get_logger("export_templates.template").debug("nested %s", "call")
    assert first.getvalue() == ""
    assert second.getvalue() == "DEBUG export_templates.template: nested call\n"


def test_get_logger_returns_package_child():
    assert get_logger("export_templates.template").name == "export_templates.template"
    assert logging.getLogger("export_templates").handlers

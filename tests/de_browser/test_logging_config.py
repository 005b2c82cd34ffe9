import logging

import pytest
from pythonjsonlogger import jsonlogger

from de_browser.logging_config import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_json_by_default(restore_root_logger, monkeypatch):
    monkeypatch.delenv("DE_BROWSER_LOG_FORMAT", raising=False)

    configure_logging()

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, jsonlogger.JsonFormatter)


def test_configure_logging_plain_from_env(restore_root_logger, monkeypatch):
    monkeypatch.setenv("DE_BROWSER_LOG_FORMAT", "plain")

    configure_logging(level=logging.DEBUG)

    formatter = restore_root_logger.handlers[0].formatter
    assert not isinstance(formatter, jsonlogger.JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG


def test_force_format_overrides_env(restore_root_logger, monkeypatch):
    monkeypatch.setenv("DE_BROWSER_LOG_FORMAT", "plain")

    configure_logging(force_format="json")

    assert isinstance(restore_root_logger.handlers[0].formatter, jsonlogger.JsonFormatter)

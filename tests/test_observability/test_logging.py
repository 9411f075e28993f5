"""Tests for structured logging setup."""

import logging

import pytest

from disclosure_crawler.observability.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_root_handlers():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


class TestSetupLogging:

    def test_explicit_level(self):
        setup_logging(level="debug", json_logs=False)

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_output_keeps_cjk(self, capsys):
        setup_logging(level="INFO", json_logs=True)

        get_logger("tests.logging").info("Crawl complete", name="台積電", records=3)

        out = capsys.readouterr().out
        assert '"event": "Crawl complete"' in out
        assert "台積電" in out
        assert '"records": 3' in out

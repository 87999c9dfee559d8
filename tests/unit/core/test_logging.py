"""Unit tests for the logging helpers."""

import logging

import pytest

from tcp_repeat.core.logging_config import JournalFormatter, configure_logging, running_under_systemd
from tcp_repeat.core.logging_utils import get_module_logger


def _record(level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord("tcp_repeat.Engine", level, __file__, 1, message, None, None)


class TestStructuredLogger:

    def test_component_prefix(self, caplog):
        logger = get_module_logger("Engine")
        with caplog.at_level(logging.INFO, logger="tcp_repeat"):
            logger.info("Ingested %d captures", 2)

        assert logger.name == "tcp_repeat.Engine"
        assert caplog.records[-1].getMessage() == "[Engine] Ingested 2 captures"


class TestJournalFormatter:

    @pytest.mark.parametrize("level,priority", [
        (logging.ERROR, "<3>"),
        (logging.WARNING, "<4>"),
        (logging.INFO, "<6>"),
        (logging.DEBUG, "<7>"),
    ])
    def test_priority_prefix(self, level, priority):
        line = JournalFormatter().format(_record(level, "hello"))
        assert line == f"{priority}tcp_repeat.Engine | hello"

    def test_systemd_detection(self, monkeypatch):
        monkeypatch.delenv("SYSTEMD", raising=False)
        assert running_under_systemd() is False
        monkeypatch.setenv("SYSTEMD", "1")
        assert running_under_systemd() is True


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "server.log"
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug", force=True, console=False, log_file=log_file)
        get_module_logger("Test").info("written")
        for handler in root.handlers:
            handler.flush()
        assert "[Test] written" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger("aiohttp.access").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

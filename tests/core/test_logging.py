# tests/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging

import pytest

pytestmark = pytest.mark.usefixtures("restore_logging")


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_get_logger_returns_logger(self) -> None:
        from ferryman.core.logging import get_logger

        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        from ferryman.core.logging import configure_logging, get_logger

        configure_logging(json_output=True)
        get_logger("test").info("Document quarantined", stage="UPSERT", doc_digest="abc")

        log_line = capsys.readouterr().out.strip().split("\n")[-1]
        data = json.loads(log_line)
        assert data["event"] == "Document quarantined"
        assert data["stage"] == "UPSERT"
        assert data["level"] == "info"
        assert "timestamp" in data
        assert "_record" not in data

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        from ferryman.core.logging import configure_logging, get_logger

        configure_logging(json_output=False)
        get_logger("test").info("Migration starting", dry_run=True)

        out = capsys.readouterr().out
        assert "Migration starting" in out
        assert not out.strip().startswith("{")

    def test_stdlib_loggers_share_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Records from logging.getLogger() go through the same JSON renderer."""
        from ferryman.core.logging import configure_logging

        configure_logging(json_output=True)
        logging.getLogger("some.library").warning("plain stdlib message")

        data = json.loads(capsys.readouterr().out.strip().split("\n")[-1])
        assert data["event"] == "plain stdlib message"
        assert data["level"] == "warning"

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        from ferryman.core.logging import configure_logging, get_logger

        configure_logging(json_output=True, level="WARNING")
        get_logger("test").info("hidden")

        assert "hidden" not in capsys.readouterr().out

    def test_sqlalchemy_never_below_warning(self) -> None:
        """Statement echo would put bound document bodies in the log."""
        from ferryman.core.logging import configure_logging

        configure_logging(level="DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG

    def test_noisy_loggers_follow_stricter_root(self) -> None:
        from ferryman.core.logging import configure_logging

        configure_logging(level="ERROR")

        assert logging.getLogger("sqlalchemy").level == logging.ERROR

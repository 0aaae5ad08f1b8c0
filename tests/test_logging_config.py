"""Tests for logging configuration."""

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from finance_ledger.utils.logging_config import LogContext, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach handlers installed on the package logger."""
    yield
    package_logger = logging.getLogger("finance_ledger")
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_only(self, tmp_path: Path) -> None:
        """Test that records below the level are dropped and the rest reach the file."""
        log_file = tmp_path / "ledger.log"
        logger = setup_logging(level="WARNING", log_file=str(log_file), console_output=False)

        get_logger("finance_ledger.processing.importer").info("quiet")
        get_logger("finance_ledger.processing.importer").warning("loud")

        assert len(logger.handlers) == 1
        content = log_file.read_text(encoding="utf-8")
        assert "finance_ledger.processing.importer - WARNING - loud" in content
        assert "quiet" not in content

    def test_console_handler_is_rich(self, tmp_path: Path) -> None:
        """Test that console output uses a rich handler."""
        logger = setup_logging(level="DEBUG", log_file=str(tmp_path / "a.log"))

        assert logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_repeated_setup_replaces_handlers(self, tmp_path: Path) -> None:
        """Test that calling setup twice does not duplicate handlers."""
        setup_logging(log_file=str(tmp_path / "a.log"))
        logger = setup_logging(log_file=str(tmp_path / "b.log"))

        assert len(logger.handlers) == 2


class TestGetLogger:
    """Tests for get_logger."""

    def test_module_name(self) -> None:
        """Test that module names are not prefixed twice."""
        assert get_logger("finance_ledger.config").name == "finance_ledger.config"
        assert get_logger("scratch").name == "finance_ledger.scratch"


class TestLogContext:
    """Tests for LogContext."""

    def test_masks_sensitive_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that sensitive keys are masked in the start message."""
        logger = get_logger("tests.context")
        with caplog.at_level(logging.DEBUG, logger="finance_ledger"):
            with LogContext(logger, "import", account="checking", iban="CR0012"):
                pass

        assert "account=checking" in caplog.text
        assert "iban=***" in caplog.text
        assert "CR0012" not in caplog.text
        assert "Completed import in" in caplog.text

    def test_logs_and_propagates_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that failures are logged and re-raised."""
        logger = get_logger("tests.context")
        with caplog.at_level(logging.DEBUG, logger="finance_ledger"):
            with pytest.raises(ValueError):
                with LogContext(logger, "import"):
                    raise ValueError("bad file")

        assert "Error in import" in caplog.text
        assert "ValueError: bad file" in caplog.text

"""Logging configuration for the finance ledger.

All modules log through children of the ``finance_ledger`` logger. The log
file always receives the plain formatted records; console output, when
enabled, goes through rich on stderr so it does not mix with the report
printed on stdout.
"""

import logging
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "finance_ledger"
DEFAULT_LOG_FILE = "finance_ledger.log"

# Context keys masked by LogContext
SENSITIVE_FIELDS = {'password', 'token', 'account_number', 'card_number', 'iban', 'secret', 'api_key'}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _sanitize_context(context: dict[str, object]) -> dict[str, object]:
    return {k: '***' if k.lower() in SENSITIVE_FIELDS else v for k, v in context.items()}


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, uses DEFAULT_LOG_FILE.
        console_output: Whether to also log to stderr.

    Returns:
        The package logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    file_handler = logging.FileHandler(Path(log_file or DEFAULT_LOG_FILE), encoding="utf-8")
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(file_handler)

    if console_output:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: Module name (typically __name__).

    Returns:
        A child of the package logger.
    """
    prefix = f"{PACKAGE_LOGGER}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return logging.getLogger(f"{prefix}{name}")


class LogContext:
    """Logs the start, duration and failure of an operation."""

    def __init__(self, logger: logging.Logger, operation: str, **context: object):
        """Initialize log context.

        Args:
            logger: Logger instance to use.
            operation: Name of the operation being performed.
            **context: Values included in the start message (sensitive keys masked).
        """
        self.logger = logger
        self.operation = operation
        self.context = context
        self.started = 0.0

    @property
    def elapsed(self) -> float:
        """Seconds since the context was entered."""
        return time.perf_counter() - self.started

    def __enter__(self) -> "LogContext":
        self.started = time.perf_counter()
        context_str = ", ".join(f"{k}={v}" for k, v in _sanitize_context(self.context).items())
        self.logger.debug(f"Starting {self.operation}: {context_str}")
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> bool:
        if exc_type is not None:
            self.logger.error(
                f"Error in {self.operation} after {self.elapsed:.3f}s: {exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        else:
            self.logger.debug(f"Completed {self.operation} in {self.elapsed:.3f}s")
        return False

"""
Logging configuration for VidLook.

Sets up a rotating log file plus an optional rich console handler, and
provides small helper loggers for slow requests and relay rejections.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from . import config
from .constants import LoggingConstants, NetworkConstants


def setup_logging(
    log_level: str = LoggingConstants.DEFAULT_LOG_LEVEL,
    log_file: Optional[Path] = None,
    enable_console: bool = True,
    enable_colors: bool = True,
) -> None:
    """
    Setup logging for an application embedding the engine.

    Args:
        log_level: Default log level
        log_file: Path to log file (None for default)
        enable_console: Whether to enable console logging
        enable_colors: Whether to render console output through rich
    """
    app_logger = logging.getLogger(config.APP_NAME)
    app_logger.handlers.clear()
    app_logger.setLevel(getattr(logging, log_level.upper()))

    if log_file is None:
        log_dir = config.USER_CONFIG_DIR / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LoggingConstants.LOG_FILE_NAME

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LoggingConstants.MAX_LOG_SIZE,
        backupCount=LoggingConstants.BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LoggingConstants.FILE_LOG_FORMAT))
    file_handler.setLevel(getattr(logging, LoggingConstants.FILE_LOG_LEVEL))
    app_logger.addHandler(file_handler)

    if enable_console:
        if enable_colors:
            console_handler: logging.Handler = RichHandler(
                rich_tracebacks=True, show_path=False
            )
            console_handler.setFormatter(
                logging.Formatter(LoggingConstants.RICH_LOG_FORMAT)
            )
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(
                logging.Formatter(LoggingConstants.CONSOLE_LOG_FORMAT)
            )
        console_handler.setLevel(getattr(logging, LoggingConstants.CONSOLE_LOG_LEVEL))
        app_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the application namespace."""
    if name.startswith(config.APP_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{config.APP_NAME}.{name}")


def set_module_log_level(module_name: str, level: str) -> None:
    """Set log level for a specific module."""
    get_logger(module_name).setLevel(getattr(logging, level.upper()))


# Performance logging utilities
class PerformanceLogger:
    """Logger for performance metrics."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"{config.APP_NAME}.perf.{name}")

    def log_duration(self, operation: str, duration: float, **kwargs) -> None:
        """Log operation duration."""
        extra_info = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.info(f"{operation} took {duration:.3f}s {extra_info}".rstrip())

    def log_slow_request(
        self,
        url: str,
        duration_ms: float,
        threshold_ms: float = NetworkConstants.SLOW_REQUEST_MS,
    ) -> bool:
        """Log a provider request that exceeded the slow threshold."""
        if duration_ms <= threshold_ms:
            return False
        safe_url = url[:80] + "..." if len(url) > 80 else url
        self.logger.warning(f"Slow provider request ({duration_ms:.0f}ms): {safe_url}")
        return True


# Security logging utilities
class SecurityLogger:
    """Logger for security events."""

    def __init__(self):
        self.logger = logging.getLogger(f"{config.APP_NAME}.security")

    def log_validation_failure(self, field: str, value: str, reason: str) -> None:
        """Log validation failure."""
        safe_value = value[:50] + "..." if len(value) > 50 else value
        self.logger.warning(
            f"Validation failed for {field}: {reason} (value: {safe_value})"
        )

    def log_relay_rejection(self, host: str, url: str) -> None:
        """Log a relay request refused by the host allow-list."""
        safe_url = url[:80] + "..." if len(url) > 80 else url
        self.logger.warning(f"Relay refused host '{host}' for {safe_url}")

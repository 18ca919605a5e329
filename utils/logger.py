"""
Logging utilities with automatic API key masking for security.
Supports context-aware logging for CLI runs vs an engine embedded in a host application.
"""

import logging
import re
import os
from typing import Optional
from enum import Enum
from config.settings import settings


class LoggingContext(Enum):
    """Logging context modes for different execution scenarios."""
    STANDALONE = "standalone"          # CLI / direct use (full logging)
    ORCHESTRATED = "orchestrated"      # Embedded in a host service (quiet components)
    SILENT = "silent"                  # Test runs and batch jobs (minimal output)
    PIPELINE_QUIET = "pipeline_quiet"  # User-facing CLI output (clean output)


# Global logging mode (default: check env var, else standalone)
_env_mode = os.getenv('LOG_MODE', 'standalone').lower()
try:
    _CURRENT_MODE = LoggingContext(_env_mode)
except ValueError:
    _CURRENT_MODE = LoggingContext.STANDALONE

# Loggers that keep INFO level in orchestrated mode
CONSOLE_LOGGERS = {
    'run_query', 'run_clean_cache', 'query_engine', 'engine'
}


def set_logging_mode(mode: LoggingContext):
    """
    Set the global logging mode.

    Loggers already created keep their level; call before the engine modules are imported
    or re-run setup_logger for the loggers that should pick up the new mode.

    Args:
        mode: LoggingContext enum value
    """
    global _CURRENT_MODE
    _CURRENT_MODE = mode


def get_logging_mode() -> LoggingContext:
    """Get the current logging mode."""
    return _CURRENT_MODE


class SecureFormatter(logging.Formatter):
    """Custom formatter that masks API keys in log messages."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Long alphanumeric runs (optionally "sk-" prefixed) look like API keys
        self.api_key_pattern = re.compile(r'\bsk-[A-Za-z0-9_\-]{16,}|\b[A-Za-z0-9]{20,}\b')

    def format(self, record):
        message = super().format(record)

        def mask_match(match):
            return settings.mask_api_key(match.group(0))

        return self.api_key_pattern.sub(mask_match, message)


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Setup a logger with secure formatting and context-aware levels.

    Args:
        name: Logger name
        level: Logging level (default: INFO, may be overridden by mode)
        log_file: Optional file path for file logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    effective_level = level
    current_mode = get_logging_mode()

    if current_mode == LoggingContext.ORCHESTRATED:
        if name not in CONSOLE_LOGGERS:
            effective_level = logging.ERROR
    elif current_mode == LoggingContext.SILENT:
        effective_level = logging.CRITICAL
    elif current_mode == LoggingContext.PIPELINE_QUIET:
        # run_query.py prints its own progress
        effective_level = logging.ERROR

    logger.setLevel(effective_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(effective_level)

    formatter = SecureFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(effective_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Default logger for the application
default_logger = setup_logger('query_engine', level=logging.INFO)

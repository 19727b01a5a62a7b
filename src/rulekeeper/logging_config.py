"""Diagnostic logging configuration for rulekeeper.

stdout and stderr carry the hook protocol, so diagnostics never go to the
console. Until configure_logging() is called every rulekeeper logger is
silent (NullHandler). When enabled, logs are written with rotation:

- Max file size: 1 MB per log file
- Backup count: 3 (keeps rulekeeper.log, rulekeeper.log.1, ..., rulekeeper.log.3)

This is separate from the per-session audit trail in rulekeeper.audit.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_FILE = "rulekeeper.log"
DEFAULT_MAX_BYTES = 1024 * 1024  # 1 MB per file
DEFAULT_BACKUP_COUNT = 3
DEFAULT_LOG_LEVEL = logging.DEBUG
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ROOT_LOGGER_NAME = "rulekeeper"


def _root_logger() -> logging.Logger:
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    # Never fall through to the root logger or logging.lastResort (stderr)
    root_logger.propagate = False
    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())
    return root_logger


def configure_logging(
    log_dir: Path | str,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
) -> logging.Logger:
    """Send rulekeeper diagnostics to a rotating file.

    Args:
        log_dir: Directory for log files
        log_file: Log file name (default: rulekeeper.log)
        max_bytes: Maximum size per log file before rotation
        backup_count: Number of backup files to keep
        log_level: Logging level (default: DEBUG)
        log_format: Log message format

    Returns:
        The root rulekeeper logger instance. If the log directory cannot be
        created the logger stays silent.
    """
    root_logger = _root_logger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    try:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError:
        root_logger.addHandler(logging.NullHandler())
        return root_logger

    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a rulekeeper component.

    Args:
        name: Component name (e.g., 'dispatcher', 'session_state')

    Returns:
        A logger instance under the rulekeeper namespace.
    """
    _root_logger()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Close file handlers and return to the silent default."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.addHandler(logging.NullHandler())

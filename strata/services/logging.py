"""Logging configuration for the levies API server.

Provides dual output (stdout + file) with the level taken from LOG_LEVEL.
Default: INFO. Set LOG_LEVEL=WARNING for production, DEBUG for SQL-level detail.
"""

import logging
import sys
from pathlib import Path

from strata.config import get_settings

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_name: str | None = None) -> int:
    """Resolve a level name (or the configured LOG_LEVEL) to a logging constant.

    Unknown names fall back to INFO.
    """
    if level_name is None:
        level_name = get_settings().log_level
    return LOG_LEVEL_MAP.get(level_name.upper(), logging.INFO)


def setup_server_logging(log_file: str | None = None) -> None:
    """
    Configure root logger for the API server.

    Args:
        log_file: Path to log file (default: LOG_FILE setting, logs/server.log)

    Behavior:
        - Sends every logger to both stdout and the log file
        - Uses ISO timestamps
        - Replaces existing root handlers so repeated calls do not duplicate output
    """
    if log_file is None:
        log_file = get_settings().log_file

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # SQL statement logging is opt-in through DATABASE_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


__all__ = ["LOG_LEVEL_MAP", "get_log_level", "setup_server_logging"]

"""Centralized logging configuration for the pacekeeper application.

Sets up standard Python logging with a console handler and, optionally, a
per-session log file inside the maintenance log directory. Those session
files are what the log cleanup step later prunes.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pacekeeper.infrastructure.maintenance.log_cleanup import LOG_SUFFIX, SESSION_PREFIX

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None


def session_log_path(log_directory: Union[str, Path], now: datetime) -> Path:
    """Path of the session log for a process started at ``now``: ``session_YYYYMMDD_HHMMSS.log``."""
    return Path(log_directory) / f"{SESSION_PREFIX}{now:%Y%m%d_%H%M%S}{LOG_SUFFIX}"


def parse_log_level(value: Union[str, int, None], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Accepts 'debug', 'INFO', 10 and similar; unknown names fall back to ``default``."""
    if isinstance(value, int):
        return value
    if not value:
        return default
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def _attach_file_handler(root_logger: logging.Logger, log_file: Path,
                         log_level: int, formatter: logging.Formatter) -> Optional[Path]:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
    except OSError as e:
        root_logger.error(f"Cannot open log file {log_file}: {e}")
        return None
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)
    return log_file


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[Union[str, Path]] = DEFAULT_LOG_FILE,
    session_directory: Optional[Union[str, Path]] = None,
    started_at: Optional[datetime] = None,
) -> Optional[Path]:
    """Configures the root logger: a stdout handler plus at most one file handler.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Explicit log file. Takes precedence over ``session_directory``.
        session_directory: When set and ``log_file`` is not, log to a
            ``session_YYYYMMDD_HHMMSS.log`` file there, named after ``started_at``
            (default: now). The log cleanup step prunes these files.
        started_at: Process start time used to name the session file.

    Returns:
        The file being logged to, or None when logging to the console only.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    target: Optional[Path] = None
    if log_file:
        target = Path(log_file)
    elif session_directory:
        target = session_log_path(session_directory, started_at or datetime.now())

    active = _attach_file_handler(root_logger, target, log_level, formatter) if target else None
    root_logger.info(
        f"Logging configured. Level={logging.getLevelName(log_level)}, file={active or 'none'}"
    )
    return active

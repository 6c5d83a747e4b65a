"""Logging configuration with console and rotating file handlers"""
import glob
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

KEEP_SESSION_LOGS = 5
MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB


def setup_logging(
    log_file: Optional[str] = "logs/kb-search.log",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Optional[Path]:
    """
    Configure root logging for the KB search service.

    - Console: brief logs (INFO by default)
    - File: detailed logs (DEBUG by default), one file per process start,
      rotated at 10MB; only the last 5 session files are kept

    Args:
        log_file: Base path of the log file, or None for console only
        console_level: Console logging level
        file_level: File logging level

    Returns:
        Path of this session's log file (None when file logging is off)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter in handlers

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root_logger.addHandler(console_handler)

    session_log = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Newest first; make room for the session file created below
        existing_logs = sorted(glob.glob(str(log_path.parent / f"{log_path.stem}_*.log")), reverse=True)
        for old_log in existing_logs[KEEP_SESSION_LOGS - 1:]:
            try:
                Path(old_log).unlink()
            except OSError:
                pass  # Another process may have removed it

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        session_log = log_path.parent / f"{log_path.stem}_{timestamp}.log"

        file_handler = RotatingFileHandler(
            session_log,
            mode='a',
            maxBytes=MAX_LOG_BYTES,
            backupCount=10,
            encoding='utf-8'
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(file_handler)

    # Suppress noisy third-party loggers in console (but keep in file)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info(
        f"Logging configured: console={logging.getLevelName(console_level)}, "
        f"file={session_log or 'disabled'} ({logging.getLevelName(file_level)})"
    )
    return session_log

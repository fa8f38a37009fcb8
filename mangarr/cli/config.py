import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "{asctime:^} | {levelname: ^8} | {filename: ^14} {lineno: <4} | {message}"
DATE_FORMAT = "%d.%m.%Y %H:%M:%S"


def setup_logging(
        level: str = "INFO",
        log_path: Optional[str] = None,
        max_size_mb: int = 50,
        max_backups: int = 3,
):
    """
    Configure logging for the application.

    Sets third-party loggers (e.g., 'requests', 'urllib3') to WARNING and configures the
    root logger with a custom format. Logs go to stdout, or to a rotating file when
    `log_path` is set. Calling it again replaces the previous handlers, so it is also
    used to apply reloaded log settings.

    Parameters:
        level (str): Name of the root log level.
        log_path (Optional[str]): Log file path; stdout when empty.
        max_size_mb (int): Size in megabytes at which the log file is rotated.
        max_backups (int): Number of rotated log files to keep.
    """
    for logger_name in ("requests", "urllib3", "filelock", "PIL"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    if log_path:
        Path(log_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            Path(log_path).expanduser(),
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=max_backups,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stdout)

    logging.basicConfig(
        handlers=[handler],
        format=LOG_FORMAT,
        style="{",
        datefmt=DATE_FORMAT,
        level=level,
        force=True,
    )

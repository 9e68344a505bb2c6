"""Logging configuration for the k3pi package."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(debug_mode: bool = False, log_file: Optional[str] = None,
                  max_size_mb: int = 10, backup_count: int = 3) -> None:
    """Configure root logging for the CLI.

    Args:
        debug_mode: Log at DEBUG instead of INFO
        log_file: Also write a rotating log file at this path
        max_size_mb: Rotation size of the log file
        backup_count: Number of rotated files to keep
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        path = Path(log_file).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        ))

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)

    # Disable debug logging for noisy libraries
    if not debug_mode:
        logging.getLogger('paramiko').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)

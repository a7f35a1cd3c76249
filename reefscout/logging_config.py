"""Logging setup shared by the API server and the CLI."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Per-request lines from the HTTP handler are logged at DEBUG here
ACCESS_LOGGER = 'reefscout.server'


def setup_logging(
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_to_console: bool = True,
    access_log: bool = False,
) -> logging.Logger:
    """
    Configure the ``reefscout`` logger tree.

    Console output is on by default. ``log_to_file=True`` also keeps a
    timestamped session log, which is useful at events where the terminal
    scrollback gets lost between matches.

    Args:
        log_dir: Directory for session logs (default: ./logs)
        level: Level for reefscout loggers (default: INFO)
        log_to_file: Write a session log file (default: False)
        log_to_console: Write to stdout (default: True)
        access_log: Show one line per HTTP request even above DEBUG

    Returns:
        The configured ``reefscout`` logger

    Example:
        from reefscout.logging_config import setup_logging
        setup_logging(level=logging.DEBUG, log_to_file=True)
    """
    root = logging.getLogger('reefscout')
    root.setLevel(level)
    root.handlers = []

    if log_to_file:
        log_dir = log_dir or Path('logs')
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f'reefscout_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
        root.addHandler(file_handler)

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s',
                                               datefmt='%H:%M:%S'))
        root.addHandler(console)

    logging.getLogger(ACCESS_LOGGER).setLevel(logging.DEBUG if access_log else logging.NOTSET)

    # urllib3 reports every retried connection; the clients log their own retries
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return root


def get_logger(name: str = 'reefscout') -> logging.Logger:
    """Logger under the reefscout namespace, e.g. get_logger('reefscout.server')."""
    return logging.getLogger(name)

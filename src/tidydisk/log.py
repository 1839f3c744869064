"""Logging setup: a cleaning log on disk plus rich console output."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from tidydisk.config import get_log_dir

LOG_FILE_NAME = "cleaning.log"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> Path | None:
    """
    Attach handlers to the package logger.

    Args:
        verbose: Show DEBUG messages on the console instead of WARNING
        log_dir: Directory for the cleaning log (default ~/.tidydisk/logs)

    Returns:
        Path of the log file, or None if it could not be opened
    """
    root = logging.getLogger("tidydisk")
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(console_handler)

    log_dir = log_dir or get_log_dir()
    log_path = log_dir / LOG_FILE_NAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        root.warning("Cleaning log unavailable (%s)", e)
        return None

    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
    )
    root.addHandler(file_handler)
    return log_path

"""Log file and console logging setup."""

import logging
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler

from infra_bootstrap.utils.output import console
from infra_bootstrap.utils.paths import ensure_dir, expand_path

LOGGER_NAME = "infra_bootstrap"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def log_file_name(now: datetime) -> str:
    """Name of the per-run log file, e.g. ``bootstrap.20250101-120000.log``."""
    return f"bootstrap.{now.strftime('%Y%m%d-%H%M%S')}.log"


def configure_logging(log_dir: str, verbose: bool = False) -> Path:
    """Attach console and file handlers to the package logger.

    The file always records DEBUG and above, so external tool output ends up
    in the log even when the console only shows INFO. Calling this again
    replaces the handlers installed by the previous call.

    Args:
        log_dir: Directory for the per-run log file (created if missing)
        verbose: Show DEBUG records on the console

    Returns:
        Path of the log file being written
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_path = ensure_dir(expand_path(log_dir)) / log_file_name(datetime.now())

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(file_handler)

    console_handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console_handler)

    logger.debug("Logging to %s", log_path)
    return log_path

"""Logger setup for the prpscene command line."""

import logging
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Route 'prpscene' log records to stderr and optionally a file.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level for the package logger and its handlers.
        log_file: Optional path, truncated and written as UTF-8.
    """
    logger = logging.getLogger("prpscene")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s", log_file or "stderr")

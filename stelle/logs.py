"""Logging setup — file only, the terminal belongs to the Live display."""
import logging
from pathlib import Path
from typing import Optional

from .config import APP_LOG, LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL, log_file: Optional[Path] = APP_LOG) -> None:
    """Attach a file handler to the ``stelle`` logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Destination file; ``None`` disables logging output entirely
    """
    logger = logging.getLogger("stelle")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.propagate = False

    if log_file is None:
        logger.addHandler(logging.NullHandler())
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
    ))
    logger.addHandler(handler)

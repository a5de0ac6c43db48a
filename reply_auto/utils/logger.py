"""
Logger factory for consistent logging across the suggestion engine.
"""

import logging
import os
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> Any:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name, typically __name__ from the caller.

    Returns:
        A logging.Logger with a stream handler attached once. The level comes
        from the REPLY_AUTO_LOG_LEVEL environment variable (default INFO).
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    level_name = os.getenv("REPLY_AUTO_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(levelname)s: [%(name)s] %(asctime)s: %(message)s"


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """
    Configure the ``spycam`` logger tree once.

    Args:
        level: Logging level; falls back to ``SPYCAM_LOG_LEVEL`` (default INFO)

    Returns:
        The package root logger
    """
    if level is None:
        level = os.getenv("SPYCAM_LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger("spycam")
    logger.setLevel(level)
    # Prevent messages from propagating to the root logger (avoid double prints under uvicorn)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger

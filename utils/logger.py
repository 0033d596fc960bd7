"""
utils/logger.py
Centralized logging helper used across the project.
Provides get_logger(name) that configures console logging (and optionally a file).
The default level can be raised or lowered with the LOG_LEVEL env var.
"""

import logging
import os
import sys
from logging import Logger
from typing import Optional


def _default_level() -> int:
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_logger(name: str, level: Optional[int] = None, to_file: Optional[str] = None) -> Logger:
    """
    Returns a configured logger.

    Args:
        name: logger name, dotted module path (e.g., "inference.engine")
        level: logging level; LOG_LEVEL env var (default INFO) when None
        to_file: optional file path to write logs. If None, logs only to console.

    Returns:
        logging.Logger
    """
    level = _default_level() if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Avoid adding multiple handlers if called multiple times
    if not logger.handlers:
        fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        formatter = logging.Formatter(fmt)

        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

        if to_file:
            fh = logging.FileHandler(to_file)
            fh.setLevel(level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)

        # Avoid propagate to root logger (prevent duplicate logs)
        logger.propagate = False

    return logger

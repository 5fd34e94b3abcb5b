#!/usr/bin/env python3
"""
Logging setup
Every module logs through logging.getLogger(__name__); the entry point
attaches the console and optional file handlers to the root logger once.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_HANDLER_MARK = '_edgesim_handler'


def _mark(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    setattr(handler, _HANDLER_MARK, True)
    return handler


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger

    Handlers installed by an earlier call are replaced, so repeated runs in
    one process do not duplicate output.

    Returns:
        the "edgesim" logger used by the entry point
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level: {level}")

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(numeric_level)
    root.addHandler(_mark(logging.StreamHandler(sys.stdout)))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_mark(logging.FileHandler(log_file, encoding='utf-8')))

    return get_logger()


def get_logger(name: str = "edgesim") -> logging.Logger:
    return logging.getLogger(name)

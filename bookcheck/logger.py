"""Logging setup for the command line tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

FORMAT = "[%(name)s] %(levelname)s %(message)s"


def setup_logger(
    name: str = "bookcheck",
    level: int = logging.INFO,
    log_file: Union[str, Path, None] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Configure a logger with a console handler and an optional file handler.

    Previously installed handlers are removed, so calling this twice does
    not duplicate output.

    Args:
        name: Logger name; ``bookcheck`` covers every module of the package
        level: Logging level
        log_file: File to also write log records to
        console_output: Whether to log to stderr

    Returns:
        The configured logger
    """
    formatter = logging.Formatter(FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.hasHandlers():
        logger.handlers.clear()

    handlers: list[logging.Handler] = []
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    if console_output:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


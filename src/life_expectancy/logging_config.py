"""
Logging setup shared by every life_expectancy module.

Each module calls ``create_logger(__name__)`` once at import time. The CLI
then adjusts all package loggers together: ``set_log_level`` for
``--log-level`` and ``attach_log_file`` for ``--log-file``.
"""

import logging
import os
import sys
from typing import Any, Dict, Optional, Union

import colorlog

PACKAGE_LOGGER = "life_expectancy"

CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(cyan)s%(name)s%(reset)s | %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"
LOG_COLORS = {
    "DEBUG": "white",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

TROUBLESHOOTING = (
    "Check the input file header and delimiter",
    "Verify every row has a country and an integer year",
    "Look for non-numeric text in life expectancy, adult mortality, GDP or BMI",
    "Re-run with --log-level DEBUG",
)


def _console_handler(log_level: Union[int, str]) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, log_colors=LOG_COLORS))
    return handler


def _file_handler(path: str, log_level: Union[int, str]) -> logging.Handler:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)

    handler = logging.FileHandler(path)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _package_loggers():
    for name, existing in logging.root.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER) and isinstance(existing, logging.Logger):
            yield existing


def create_logger(
    name: Optional[str] = None,
    log_level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Build a colour-coded console logger, optionally also writing to a file.

    Calling it again for the same name replaces the handlers instead of
    stacking new ones.

    :param name: Logger name, normally ``__name__``
    :param log_level: Level for the logger and its handlers
    :param log_dir: Directory for the log file; the file is ``<name>.log``
        unless ``log_file`` is given
    :param log_file: Log file name or path
    :return: The configured logger
    """
    logger = colorlog.getLogger(name or PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(log_level))

    if log_dir or log_file:
        path = log_file or f"{logger.name}.log"
        if log_dir:
            path = os.path.join(log_dir, path)
        logger.addHandler(_file_handler(path, log_level))

    return logger


def set_log_level(log_level: Union[int, str]) -> None:
    """
    Apply a log level to every logger created for this package.

    :param log_level: Logging level name or number
    """
    for logger in _package_loggers():
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)


def attach_log_file(path: str, log_level: Union[int, str] = logging.INFO) -> logging.Handler:
    """
    Send the output of every package logger to one plain-text file as well.

    :param path: Log file path; parent directories are created
    :param log_level: Level for the file handler
    :return: The shared file handler, for the caller to detach and close
    """
    handler = _file_handler(path, log_level)
    for logger in _package_loggers():
        logger.addHandler(handler)
    return handler


def detach_log_file(handler: logging.Handler) -> None:
    """Remove a handler added by ``attach_log_file`` and close it."""
    for logger in _package_loggers():
        if handler in logger.handlers:
            logger.removeHandler(handler)
    handler.close()


def log_exception(
    logger: logging.Logger,
    e: BaseException,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a failed run at CRITICAL with its context and the usual fixes.

    :param logger: Logger instance
    :param e: The exception that stopped the run
    :param context: Values identifying the failed run, logged one per line
    """
    logger.critical(f"Cleaning run failed with {type(e).__name__}: {e}")

    cause = e.__cause__
    if cause is not None:
        logger.critical(f"Caused by {type(cause).__name__}: {cause}")

    for key, value in (context or {}).items():
        logger.critical(f"  {key}: {value}")

    logger.critical("Troubleshooting:")
    for number, step in enumerate(TROUBLESHOOTING, start=1):
        logger.critical(f"  {number}. {step}")

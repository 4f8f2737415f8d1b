"""Logger module."""

import logging
import os
import sys

import colorlog

loggers: dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _make_handler(log_handler: str, *, log_color: bool) -> logging.Handler:
    if log_handler != "stdout":
        err_msg = f"Invalid handler: {log_handler}"
        raise ValueError(err_msg)

    if log_color:
        handler = colorlog.StreamHandler(sys.stdout)
        handler.setFormatter(
            colorlog.ColoredFormatter(f"%(log_color)s {LOG_FORMAT}", log_colors=LOG_COLORS)
        )
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def get_logger(
    name: str,
    log_handler: str = "stdout",
    log_level: str | None = None,
    log_color: bool = False,
) -> logging.Logger:
    """Get logger.

    Loggers are cached by name, so the settings of the first call win.

    Args:
        name: The name of the logger.
        log_handler: The log handler type ('stdout').
        log_level: The logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL').
            Defaults to the LOG_LEVEL environment variable, then 'INFO'.
        log_color: Whether to use colored output.

    Returns:
        logging.Logger: Configured logger instance.

    Raises:
        ValueError: If invalid handler or log level is provided.
    """
    if name in loggers:
        return loggers[name]

    level_name = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if level_name not in LOG_LEVELS:
        err_msg = f"Invalid log level: {level_name}"
        raise ValueError(err_msg)
    level = LOG_LEVELS[level_name]

    handler = _make_handler(log_handler, log_color=log_color)
    handler.setLevel(level)

    logger = colorlog.getLogger(name) if log_color else logging.getLogger(name)
    logger.setLevel(level)
    logger.addHandler(handler)

    loggers[name] = logger
    return logger

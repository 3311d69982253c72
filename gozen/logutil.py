"""Logging shortcuts and an optional elapsed-time logger."""

from __future__ import annotations

import logging
import time
from datetime import timedelta

DEFAULT_LOGGER_NAME = "gozen.default"
LOGIC_LOGGER_NAME = "gozen.logic"

DEFAULT_LOGGER = logging.getLogger(DEFAULT_LOGGER_NAME)
LOGIC_LOGGER = logging.getLogger(LOGIC_LOGGER_NAME)

_time_log_enabled = False


def log_error(msg: str) -> None:
    """Log ``msg`` at ERROR level on the default logger."""
    DEFAULT_LOGGER.error(msg)


def log_errorf(fmt: str, *args: object) -> None:
    """Log a %-style message at ERROR level on the default logger."""
    DEFAULT_LOGGER.error(fmt, *args)


def log_info(msg: str) -> None:
    """Log ``msg`` at INFO level on the default logger."""
    DEFAULT_LOGGER.info(msg)


def log_infof(fmt: str, *args: object) -> None:
    """Log a %-style message at INFO level on the default logger."""
    DEFAULT_LOGGER.info(fmt, *args)


def log_debug(msg: str) -> None:
    """Log ``msg`` at DEBUG level on the default logger."""
    DEFAULT_LOGGER.debug(msg)


def log_debugf(fmt: str, *args: object) -> None:
    """Log a %-style message at DEBUG level on the default logger."""
    DEFAULT_LOGGER.debug(fmt, *args)


class Log:
    """Small object wrapper around the default logger."""

    def error(self, fmt: str, *args: object) -> None:
        log_errorf(fmt, *args)

    def info(self, fmt: str, *args: object) -> None:
        log_infof(fmt, *args)


def set_log_time_switch(enabled: bool) -> None:
    """Turn elapsed-time logging by :class:`LogTime` on or off."""
    global _time_log_enabled
    _time_log_enabled = bool(enabled)


class LogTime:
    """Logs the time between creation and :meth:`log_end` when enabled.

    Also usable as a context manager.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._start = time.perf_counter()

    def log_end(self) -> None:
        if not _time_log_enabled:
            return
        elapsed = timedelta(seconds=time.perf_counter() - self._start)
        LOGIC_LOGGER.info(
            "log time %s", self.name, extra={"log_time": str(elapsed)}
        )

    def __enter__(self) -> LogTime:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.log_end()
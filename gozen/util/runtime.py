"""Crash and error handling hooks."""

from __future__ import annotations

import inspect
import threading
import time
import traceback
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator

from gozen.logutil import log_error, log_errorf

REALLY_CRASH = True
"""When true, :func:`handle_crash` re-raises after running the handlers."""


def _callers(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def _log_panic(exc: BaseException) -> None:
    log_errorf("Observed a panic: %r (%s)\n%s", exc, exc, _callers(exc))


PANIC_HANDLERS: list[Callable[[BaseException], object]] = [_log_panic]


@contextmanager
def handle_crash(*additional_handlers: Callable[[BaseException], object]) -> Iterator[None]:
    """Run every panic handler on an exception raised in the block.

    The exception is raised again unless ``REALLY_CRASH`` is false.
    """
    try:
        yield
    except Exception as exc:
        for handler in PANIC_HANDLERS:
            handler(exc)
        for handler in additional_handlers:
            handler(exc)
        if REALLY_CRASH:
            raise


class RudimentaryErrorBackoff:
    """Blocks callers that report errors more often than ``min_period``."""

    def __init__(self, min_period: float | timedelta) -> None:
        if isinstance(min_period, timedelta):
            min_period = min_period.total_seconds()
        self.min_period = float(min_period)
        self._lock = threading.Lock()
        self._last_error = time.monotonic()

    def on_error(self, err: BaseException) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_error
            if elapsed < self.min_period:
                time.sleep(self.min_period - elapsed)
            self._last_error = time.monotonic()


def _log_error(err: BaseException) -> None:
    log_error(str(err))


ERROR_HANDLERS: list[Callable[[BaseException], object]] = [
    _log_error,
    RudimentaryErrorBackoff(0.001).on_error,
]


def handle_error(err: BaseException | None) -> None:
    """Pass an error that cannot be returned to every error handler."""
    if err is None:
        return
    for handler in ERROR_HANDLERS:
        handler(err)


def get_caller() -> str:
    """Name of the caller of the function that calls this one."""
    frame = inspect.currentframe()
    try:
        target = frame.f_back.f_back if frame and frame.f_back else None
        if target is None:
            return "Unable to find caller"
        module = inspect.getmodule(target)
        if module is not None:
            module_name = module.__name__
        else:
            module_name = Path(target.f_code.co_filename).stem
        return f"{module_name}.{target.f_code.co_name}"
    finally:
        del frame


@contextmanager
def recover_from_panic() -> Iterator[None]:
    """Turn an exception raised in the block into a RuntimeError holding its stack."""
    try:
        yield
    except Exception as exc:
        message = f'recovered from panic "{exc}". Call stack:\n{_callers(exc)}'
        raise RuntimeError(message) from exc


def must(err: BaseException | None) -> None:
    """Raise ``err`` unless it is None."""
    if err is not None:
        raise err
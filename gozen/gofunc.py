"""Run callables safely, alone or concurrently."""

from __future__ import annotations

import threading
from typing import Callable

from gozen.logutil import LOGIC_LOGGER


def go_func_one(func: Callable[[], object]) -> None:
    """Call ``func``; any exception it raises is logged and swallowed."""
    try:
        func()
    except Exception:
        LOGIC_LOGGER.exception("go_func_one error")


def go_func(*funcs: Callable[[], object]) -> None:
    """Run every callable in its own thread and wait for all of them.

    If any of them raised, the first exception recorded is raised again.
    """
    errors: list[BaseException] = []
    lock = threading.Lock()

    def run(func: Callable[[], object]) -> None:
        try:
            func()
        except Exception as exc:
            LOGIC_LOGGER.error("go_func error: %s", exc, exc_info=exc)
            with lock:
                errors.append(exc)

    threads = [threading.Thread(target=run, args=(func,)) for func in funcs]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    if errors:
        raise errors[0]
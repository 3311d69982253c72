"""Tools for polling or listening for changes to a condition.

Stop and done signals are :class:`threading.Event` objects.

A *wait function* takes such an event and returns an iterable that yields
once for every tick. It stops when the last check should be made.

A *condition* takes no arguments and returns True when it is satisfied.
It raises to abort the loop.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Iterator, TypeVar, Union

from gozen.util.runtime import handle_crash

Duration = Union[float, timedelta]
Condition = Callable[[], bool]
WaitFunc = Callable[[threading.Event], Iterable[None]]

_D = TypeVar("_D", float, timedelta)

FOREVER_TEST_TIMEOUT = 30.0
"""Seconds that count as "forever" when waiting in tests."""


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class WaitTimeoutError(Exception):
    """The condition never became true before the wait ended."""

    def __init__(self, message: str = "timed out waiting for the condition") -> None:
        super().__init__(message)


@dataclass
class Backoff:
    """Parameters for :func:`exponential_backoff`."""

    duration: Duration = 0.0
    factor: float = 1.0
    jitter: float = 0.0
    steps: int = 0


class Group:
    """Starts threads and waits for all of them to finish."""

    def __init__(self) -> None:
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    def start(self, func: Callable[[], object]) -> None:
        """Run ``func`` in a new thread of the group."""
        thread = threading.Thread(target=func, daemon=True)
        with self._lock:
            self._threads.append(thread)
        thread.start()

    def start_with_event(
        self, stop: threading.Event, func: Callable[[threading.Event], object]
    ) -> None:
        """Run ``func(stop)`` in a new thread; ``func`` should return once ``stop`` is set."""
        self.start(lambda: func(stop))

    def wait(self) -> None:
        """Block until every thread started so far has finished."""
        while True:
            with self._lock:
                pending = [thread for thread in self._threads if thread.is_alive()]
                self._threads = pending
            if not pending:
                return
            for thread in pending:
                thread.join()


def forever(func: Callable[[], object], period: Duration) -> None:
    """Call ``func`` every ``period`` without end."""
    until(func, period, threading.Event())


def until(func: Callable[[], object], period: Duration, stop: threading.Event) -> None:
    """Call ``func`` every ``period`` until ``stop`` is set; the period starts after each call."""
    jitter_until(func, period, 0.0, True, stop)


def non_sliding_until(
    func: Callable[[], object], period: Duration, stop: threading.Event
) -> None:
    """Like :func:`until`, but the period includes the time ``func`` runs."""
    jitter_until(func, period, 0.0, False, stop)


def jitter_until(
    func: Callable[[], object],
    period: Duration,
    jitter_factor: float,
    sliding: bool,
    stop: threading.Event,
) -> None:
    """Call ``func`` every period until ``stop`` is set.

    A positive ``jitter_factor`` jitters the period before each call. When
    ``sliding`` is true the period is measured after ``func`` returns,
    otherwise from when it starts. ``func`` is never called if ``stop`` is
    already set.
    """
    base = _seconds(period)
    while not stop.is_set():
        jittered = jitter(base, jitter_factor) if jitter_factor > 0.0 else base

        deadline = time.monotonic() + jittered
        with handle_crash():
            func()
        if sliding:
            deadline = time.monotonic() + jittered

        if stop.wait(max(0.0, deadline - time.monotonic())):
            return


def jitter(duration: _D, max_factor: float) -> _D:
    """A duration between ``duration`` and ``duration * (1 + max_factor)``.

    A ``max_factor`` that is not positive is taken as 1.0.
    """
    if max_factor <= 0.0:
        max_factor = 1.0
    seconds = _seconds(duration)
    waited = seconds + random.random() * max_factor * seconds
    if isinstance(duration, timedelta):
        return timedelta(seconds=waited)
    return waited


def exponential_backoff(backoff: Backoff, condition: Condition) -> None:
    """Check ``condition`` up to ``backoff.steps`` times with growing pauses.

    Raises :class:`WaitTimeoutError` if it never returns true; exceptions
    from ``condition`` end the loop at once.
    """
    duration = _seconds(backoff.duration)
    for step in range(backoff.steps):
        if step:
            adjusted = jitter(duration, backoff.jitter) if backoff.jitter > 0.0 else duration
            time.sleep(max(0.0, adjusted))
            duration *= backoff.factor
        if condition():
            return
    raise WaitTimeoutError()


def poll(interval: Duration, timeout: Duration, condition: Condition) -> None:
    """Check ``condition`` every ``interval`` until it holds or ``timeout`` passes.

    The first check comes after one interval.
    """
    poll_with(poller(interval, timeout), condition)


def poll_with(wait: WaitFunc, condition: Condition) -> None:
    """Check ``condition`` as driven by the wait function ``wait``."""
    done = threading.Event()
    try:
        wait_for(wait, condition, done)
    finally:
        done.set()


def poll_immediate(interval: Duration, timeout: Duration, condition: Condition) -> None:
    """Like :func:`poll`, but ``condition`` is checked once before waiting."""
    poll_immediate_with(poller(interval, timeout), condition)


def poll_immediate_with(wait: WaitFunc, condition: Condition) -> None:
    """Check ``condition`` once, then as driven by ``wait``."""
    if condition():
        return
    poll_with(wait, condition)


def poll_infinite(interval: Duration, condition: Condition) -> None:
    """Check ``condition`` every ``interval`` until it holds."""
    done = threading.Event()
    try:
        poll_until(interval, condition, done)
    finally:
        done.set()


def poll_immediate_infinite(interval: Duration, condition: Condition) -> None:
    """Like :func:`poll_infinite`, but ``condition`` is checked once before waiting."""
    if condition():
        return
    poll_infinite(interval, condition)


def poll_until(interval: Duration, condition: Condition, stop: threading.Event) -> None:
    """Check ``condition`` every ``interval`` until it holds or ``stop`` is set."""
    wait_for(poller(interval, 0), condition, stop)


def poll_immediate_until(
    interval: Duration, condition: Condition, stop: threading.Event
) -> None:
    """Like :func:`poll_until`, but ``condition`` is checked once before waiting."""
    if condition():
        return
    if stop.is_set():
        raise WaitTimeoutError()
    poll_until(interval, condition, stop)


def wait_for(wait: WaitFunc, condition: Condition, done: threading.Event) -> None:
    """Check ``condition`` on every tick of ``wait(done)`` and once more after the last.

    Returns when ``condition`` is true, propagates what it raises, and raises
    :class:`WaitTimeoutError` when the ticks run out first.
    """
    ticks = iter(wait(done))
    try:
        for _ in ticks:
            if condition():
                return
    finally:
        if isinstance(ticks, Generator):
            ticks.close()
    if condition():
        return
    raise WaitTimeoutError()


def poller(interval: Duration, timeout: Duration) -> WaitFunc:
    """A wait function ticking every ``interval`` until ``timeout`` has passed.

    A timeout of 0 means no timeout. Ticks missed because the consumer was
    busy are dropped. The ticks also end as soon as the done event is set.
    """
    interval_s = _seconds(interval)
    timeout_s = _seconds(timeout)
    if interval_s <= 0:
        raise ValueError("non-positive interval for poller")

    def wait(done: threading.Event) -> Iterator[None]:
        return _ticks(interval_s, timeout_s, done)

    return wait


def _ticks(interval: float, timeout: float, done: threading.Event) -> Iterator[None]:
    start = time.monotonic()
    deadline = start + timeout if timeout else None
    next_tick = start + interval
    while True:
        now = time.monotonic()
        if deadline is not None and deadline <= next_tick:
            done.wait(max(0.0, deadline - now))
            return
        if done.wait(max(0.0, next_tick - now)):
            return
        yield
        now = time.monotonic()
        if now >= next_tick:
            next_tick += (int((now - next_tick) // interval) + 1) * interval
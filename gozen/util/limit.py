"""A token pool refilled to its limit on every tick."""

from __future__ import annotations

import threading
from datetime import timedelta

from gozen.gofunc import go_func_one


class LimitCh:
    """Hands out at most ``limit_num`` tokens per ``ticker`` period."""

    def __init__(self, limit_num: int, ticker: float | timedelta) -> None:
        if limit_num < 0:
            raise ValueError("limit_num must not be negative")
        if isinstance(ticker, timedelta):
            ticker = ticker.total_seconds()
        self.limit_num = limit_num
        self.ticker = float(ticker)
        self._tokens = 0
        self._closed = False
        self._cond = threading.Condition()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Fill the pool and start refilling it every tick."""
        if self.ticker <= 0:
            raise ValueError("non-positive interval for ticker")
        self._refill()
        self._thread = threading.Thread(target=go_func_one, args=(self._run,), daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.ticker):
            self._refill()
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def _refill(self) -> None:
        with self._cond:
            self._tokens = self.limit_num
            self._cond.notify_all()

    def consume(self) -> bool:
        """Take a token, blocking until one is free; False once closed and empty."""
        with self._cond:
            self._cond.wait_for(lambda: self._tokens > 0 or self._closed)
            if self._tokens > 0:
                self._tokens -= 1
                return True
            return False

    def close(self) -> None:
        """Stop refilling; tokens left in the pool can still be consumed."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
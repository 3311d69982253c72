"""Backend service utilities: crypto helpers, HTTP calls, Redis discovery, concurrency, time and logging."""

__version__ = "0.1.0"
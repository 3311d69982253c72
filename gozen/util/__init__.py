"""Crash and error handling, a token limiter, and polling and backoff helpers."""
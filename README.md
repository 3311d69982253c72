# gozen

Small building blocks for backend services: digests and AES-CBC, plain HTTP
calls, concurrent task runners, polling and backoff loops, a token limiter,
time helpers and logging shortcuts.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `gozen.crypto`

- `md5_hex`, `md5_hex_lower`, `sha1_hex`: hex digests of a UTF-8 string.
- `md5_trimmed` and `md5_trimmed_lower`: MD5 after stripping surrounding
  whitespace (and lower-casing, for the second).
- `random_token(n)`: `2 * n` hex characters from `secrets`;
  `random_token16()` and `random_token32()` give 16 and 32 characters.
- `aes_cbc_encrypt(key, iv, data)` / `aes_cbc_decrypt(key, iv, data)`: AES in
  CBC mode with PKCS#5 padding. Keys of 16, 24 or 32 bytes and a 16-byte IV,
  given as `str` or `bytes`; anything else raises `ValueError`.
- `aes_cbc_decrypt_base64(key, iv, text)`: decodes standard base64 first.
- `pkcs5_pad` and `pkcs5_trim`: the padding on its own.

```python
from gozen.crypto import aes_cbc_encrypt, aes_cbc_decrypt, md5_hex_lower

key = md5_hex_lower("app:bid")          # 32 characters -> AES-256
iv = "0123456789abcdef"
sealed = aes_cbc_encrypt(key, iv, "hello".encode())
assert aes_cbc_decrypt(key, iv, sealed) == b"hello"
```

### `gozen.curl`

`curl_get`, `curl_post`, `curl_put`, `curl_delete` take a URL, a list of
`"Key:Value"` header lines and a timeout (seconds or `timedelta`; `None` or a
non-positive value means no timeout), and return the response body as bytes.
POST and PUT default the `Content-Type` to
`application/x-www-form-urlencoded; charset=utf-8`. `curl_delete` drops header
lines containing more than one colon. `curl(method, url, headers, body, timeout)`
takes headers as a mapping. `curl_post_file(url, params, files, timeout)` sends
`UploadFile(name, filepath)` entries and form fields as `multipart/form-data`.
An HTTP error status still returns the error response's body; connection
failures raise the `urllib`/`OSError` exception.

### `gozen.gofunc`

- `go_func_one(func)`: calls `func`, logging and swallowing any exception.
- `go_func(*funcs)`: runs each callable in its own thread, waits for all, and
  raises the first exception recorded.

```python
from gozen.gofunc import go_func

go_func(lambda: None, lambda: None)
```

### `gozen.timeutil`

`date_of`, `same_day`, `diff_days`, `is_today`, `days_later`,
`twenty_four_hours_later`, `six_hours_later`, `duration_later`, `is_expired`,
`print_elapsed` (prints milliseconds since a moment) and `is_leap_year`.

### `gozen.numeric`

`float_to_int(value, multiplied)` rounds `value * multiplied` half-to-even and
raises `ValueError` for NaN, infinities or results outside the 64-bit range.

### `gozen.logutil`

`log_error`, `log_errorf`, `log_info`, `log_infof`, `log_debug`, `log_debugf`
write to the `gozen.default` logger; `Log` wraps the same calls as methods.
`LogTime(name)` logs the elapsed time on `log_end()` (or on leaving a `with`
block) to `gozen.logic`, but only after `set_log_time_switch(True)`.

### `gozen.redis_discovery`

Talks to a discovery service that hands out Redis cluster addresses:

- `get_dynamic_redis_address(url)`: list of addresses, empty when the service
  reports failure.
- `get_no_proxy_redis_address(url, app_code, bid, iv)`: fetches and decrypts a
  cluster description into a `ClusterInfo`.
- `send_no_proxy_redis_heart(url, app_code, bid, iv, info)`: posts a
  `HeartbeatInfo` (with `HeartbeatClusterInfo` entries) and returns
  `(True, ClusterInfo)` when the service switched the cluster for `bid`,
  otherwise `(False, None)`.
- `decode_cluster_info(app_code, bid, iv, origin)`: decrypts with the key
  `md5_hex_lower(f"{app_code}:{bid}")`.

Bad answers raise `RedisDiscoveryError`.

### `gozen.util.runtime`

- `handle_crash(*handlers)`: context manager that passes an exception to every
  function in `PANIC_HANDLERS` and to the extra handlers, then re-raises it
  unless `REALLY_CRASH` is false.
- `handle_error(err)`: passes an error to every function in `ERROR_HANDLERS`
  (by default: log it, and rate-limit through `RudimentaryErrorBackoff`).
- `recover_from_panic()`: context manager turning an exception into a
  `RuntimeError` carrying its stack trace.
- `get_caller()` and `must(err)`.

### `gozen.util.limit`

`LimitCh(limit_num, ticker)` hands out at most `limit_num` tokens per period:
`start()` fills the pool and refills it every tick in a background thread,
`consume()` blocks for a token and returns `False` once closed and empty,
`close()` stops refilling.

### `gozen.util.wait`

Stop signals are `threading.Event` objects.

- `until`, `non_sliding_until`, `jitter_until`, `forever`: call a function
  periodically until the event is set; exceptions go through `handle_crash`.
- `jitter(duration, max_factor)`.
- `exponential_backoff(Backoff(...), condition)`.
- `poll`, `poll_immediate`, `poll_infinite`, `poll_immediate_infinite`,
  `poll_until`, `poll_immediate_until`, `poll_with`, `poll_immediate_with`,
  `wait_for`, `poller`.
- `Group` starts threads and waits for them.

When the condition never holds, `WaitTimeoutError` is raised; exceptions from
the condition end the loop at once.

```python
from gozen.util.wait import Backoff, exponential_backoff

attempts = []

def ready():
    attempts.append(1)
    return len(attempts) >= 3

exponential_backoff(Backoff(duration=0.01, factor=2.0, steps=5), ready)
```

## What it does not do

This is a library only: there is no command-line tool and no server. It has no
web framework integration (request parameter binding, JSON response helpers),
no message-queue client, no configuration loading and no tracing; logging goes
through the standard `logging` module and is configured by the application.
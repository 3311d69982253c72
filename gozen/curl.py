"""Small HTTP client helpers returning the raw response body."""

from __future__ import annotations

import logging
import secrets
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import timedelta
from os import PathLike
from pathlib import Path
from typing import Iterable, Iterator, Mapping

CONTENT_TYPE = "Content-Type"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"

_logger = logging.getLogger("gozen.api")


@dataclass(frozen=True)
class UploadFile:
    """A file to send as a multipart form part."""

    name: str
    filepath: str | PathLike


def _timeout_seconds(timeout: float | timedelta | None) -> float | None:
    if isinstance(timeout, timedelta):
        timeout = timeout.total_seconds()
    if not timeout or timeout <= 0:
        return None
    return float(timeout)


def _parse_headers(headers: Iterable[str] | None, maxsplit: int) -> Iterator[tuple[str, str]]:
    """Split ``Key:Value`` lines; lines that split into more than two parts are dropped."""
    for raw in headers or ():
        parts = raw.split(":", maxsplit)
        if len(parts) == 2:
            yield parts[0], parts[1]
        elif len(parts) == 1:
            yield parts[0], ""


def _send(
    method: str,
    url: str,
    headers: Iterable[tuple[str, str]],
    data: bytes | None,
    timeout: float | timedelta | None,
    default_content_type: str | None = None,
) -> bytes:
    request = urllib.request.Request(url, data=data, method=method)
    for key, value in headers:
        request.add_header(key.strip(), value.strip())
    if default_content_type and not request.get_header(CONTENT_TYPE.capitalize()):
        request.add_header(CONTENT_TYPE, default_content_type)
    try:
        with urllib.request.urlopen(request, timeout=_timeout_seconds(timeout)) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        body = exc.read()
        exc.close()
    _logger.debug("%s %s -> %r", method, url, body)
    return body


def curl_get(url: str, headers: Iterable[str] | None, timeout: float | timedelta | None) -> bytes:
    """GET ``url`` with ``Key:Value`` header lines and return the body."""
    return _send("GET", url, _parse_headers(headers, 1), None, timeout)


def curl_post(
    url: str, headers: Iterable[str] | None, data: str, timeout: float | timedelta | None
) -> bytes:
    """POST ``data``; the content type defaults to a UTF-8 form encoding."""
    return _send(
        "POST", url, _parse_headers(headers, 1), data.encode("utf-8"), timeout, FORM_CONTENT_TYPE
    )


def curl_put(
    url: str, headers: Iterable[str] | None, data: str, timeout: float | timedelta | None
) -> bytes:
    """PUT ``data``; the content type defaults to a UTF-8 form encoding."""
    return _send(
        "PUT", url, _parse_headers(headers, 1), data.encode("utf-8"), timeout, FORM_CONTENT_TYPE
    )


def curl_delete(url: str, headers: Iterable[str] | None, timeout: float | timedelta | None) -> bytes:
    """DELETE ``url``; header lines holding more than one colon are ignored."""
    return _send("DELETE", url, _parse_headers(headers, -1), None, timeout)


def curl(
    method: str,
    url: str,
    headers: Mapping[str, str] | None,
    body: str,
    timeout: float | timedelta | None,
) -> bytes:
    """Send ``body`` with any method and a mapping of headers."""
    data = body.encode("utf-8") if body else None
    return _send(method, url, (headers or {}).items(), data, timeout)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _multipart(params: Mapping[str, str], files: Iterable[UploadFile]) -> tuple[bytes, str]:
    boundary = secrets.token_hex(30)
    chunks: list[bytes] = []

    def part(disposition: str, extra: str, content: bytes) -> None:
        head = f"--{boundary}\r\nContent-Disposition: {disposition}\r\n{extra}\r\n"
        chunks.append(head.encode("utf-8") + content + b"\r\n")

    for upload in files:
        path = Path(upload.filepath)
        content = path.read_bytes()
        part(
            f'form-data; name="{_quote(upload.name)}"; filename="{_quote(path.name)}"',
            "Content-Type: application/octet-stream\r\n",
            content,
        )
    for key, value in params.items():
        part(f'form-data; name="{_quote(key)}"', "", value.encode("utf-8"))
    chunks.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def curl_post_file(
    url: str,
    params: Mapping[str, str] | None,
    files: Iterable[UploadFile] | None,
    timeout: float | timedelta | None,
) -> bytes:
    """POST files and form fields as ``multipart/form-data``."""
    body, content_type = _multipart(params or {}, files or ())
    return _send("POST", url, [(CONTENT_TYPE, content_type)], body, timeout)
"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the Firebase REST backend,
the blob store and the weather client.

Design goals:
- Small surface area (GET/PUT/PATCH JSON, POST bytes, streaming GET).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to fail (reads degrade, writes propagate).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import httpx


DEFAULT_USER_AGENT = "noticeboard/0.1.0 (+https://local)"


def _headers(headers: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if headers:
        request_headers.update(headers)
    return request_headers


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """GET `url` and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.get(url, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()


def _send_json(
    method: str,
    url: str,
    *,
    payload: Any,
    params: dict[str, Any] | None,
    headers: dict[str, str] | None,
    timeout_seconds: float,
) -> Any:
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.request(method, url, json=payload, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json() if resp.content else None


def put_json(
    url: str,
    *,
    payload: Any,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """PUT `payload` as JSON (replaces the value at `url`)."""
    return _send_json("PUT", url, payload=payload, params=params, headers=headers, timeout_seconds=timeout_seconds)


def patch_json(
    url: str,
    *,
    payload: dict[str, Any],
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """PATCH `payload` as JSON (merges the listed keys)."""
    return _send_json("PATCH", url, payload=payload, params=params, headers=headers, timeout_seconds=timeout_seconds)


def post_bytes(
    url: str,
    *,
    content: bytes,
    content_type: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """POST a raw body and return the decoded JSON response.

    Used by the Firebase Storage upload flow.
    """
    request_headers = _headers(headers)
    request_headers["Content-Type"] = content_type
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.post(url, content=content, params=params, headers=request_headers)
        resp.raise_for_status()
        return resp.json()


@contextmanager
def open_stream(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    connect_timeout_seconds: float = 15,
) -> Iterator[httpx.Response]:
    """Open a long-lived GET and yield the streaming response.

    There is no read timeout: the stream stays open until the server closes it or the
    caller calls `response.close()` (which may happen from another thread).
    """
    timeout = httpx.Timeout(connect_timeout_seconds, read=None)
    with httpx.Client(timeout=timeout) as client:
        with client.stream("GET", url, params=params, headers=_headers(headers)) as resp:
            resp.raise_for_status()
            yield resp

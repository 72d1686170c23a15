"""Utility helpers for the web mining subsystem."""

from __future__ import annotations

import re
import time
from typing import Callable, Tuple, Type, TypeVar
from urllib.parse import urljoin, urlparse

from charset_normalizer import from_bytes as detect_charset

T = TypeVar("T")

_CHARSET_RE = re.compile(r"charset=([\"']?)(?P<charset>[^\s;\"']+)\1", re.IGNORECASE)


def absolutize_url(url: str | None, base: str | None) -> str | None:
    """Resolve a possibly relative asset reference against the page URL."""

    if not url:
        return None
    url = url.strip()
    if not url or url.startswith("data:"):
        return None
    if base:
        url = urljoin(base, url)
    if urlparse(url).scheme not in {"http", "https"}:
        return None
    return url


def decode_payload(payload: bytes, content_type: str | None) -> str:
    """Decode a response body: declared charset, UTF-8, detected charset, then latin-1."""

    attempted: set[str] = set()
    if content_type:
        match = _CHARSET_RE.search(content_type)
        if match:
            charset = match.group("charset").strip()
            try:
                return payload.decode(charset, errors="strict")
            except (LookupError, UnicodeDecodeError):
                attempted.add(charset.lower())

    if "utf-8" not in attempted:
        try:
            return payload.decode("utf-8", errors="strict")
        except UnicodeDecodeError:
            attempted.add("utf-8")

    result = detect_charset(payload).best()
    if result is not None and result.encoding and result.encoding.lower() not in attempted:
        try:
            return payload.decode(result.encoding, errors="strict")
        except (LookupError, UnicodeDecodeError):
            attempted.add(result.encoding.lower())
    return payload.decode("latin-1", errors="replace")


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    delay = base_delay * (2 ** max(0, attempt))
    jitter = min(delay * 0.25, 1.0)
    return min(delay + jitter, max_delay)


def retryable(
    operation: Callable[[], T],
    retries: int = 3,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Execute an operation, retrying only the listed exception types."""

    for attempt in range(retries + 1):
        try:
            return operation()
        except retry_on:
            if attempt >= retries:
                raise
            time.sleep(exponential_backoff(attempt))
    raise RuntimeError("retryable exhausted without raising exception")


__all__ = [
    "absolutize_url",
    "decode_payload",
    "exponential_backoff",
    "retryable",
]

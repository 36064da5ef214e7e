"""
Rate-limit circuit breaker for LLM calls.

A 429-class failure opens the breaker for a backoff taken from the provider's
retry-after hints (clamped to 5-90 s, 25 s when absent). While open, the
resolver skips the LLM entirely. Nothing here retries.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Mapping
from email.utils import parsedate_to_datetime
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_SECONDS = 25.0
MIN_BACKOFF_SECONDS = 5.0
MAX_BACKOFF_SECONDS = 90.0

_RATE_LIMIT_MESSAGE = re.compile(r"429|rate limit|too many requests|quota", re.IGNORECASE)

# (header, value is in seconds)
_RETRY_AFTER_HEADERS = (
    ("retry-after", True),
    ("retry_after", True),
    ("retry-after-ms", False),
    ("retry_after_ms", False),
    ("x-retry-after", True),
    ("x-retry-after-ms", False),
)


def _status_of(obj: Any) -> Any:
    for attr in ("status_code", "status", "code"):
        value = getattr(obj, attr, None)
        if value is not None:
            return value
    return None


def is_rate_limit_error(error: BaseException | None) -> bool:
    """True for 429 responses, quota errors, or messages that say so."""
    # instructor and our own wrappers chain the provider error as __cause__
    seen = 0
    while error is not None and seen < 4:
        for candidate in (error, getattr(error, "response", None)):
            if candidate is not None and str(_status_of(candidate)) == "429":
                return True
        if _RATE_LIMIT_MESSAGE.search(str(error)):
            return True
        error = error.__cause__
        seen += 1
    return False


def _parse_retry_after(value: Any, seconds: bool) -> float | None:
    if value is None:
        return None
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        try:
            retry_at = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return None
        delta = retry_at.timestamp() - time.time()
        return delta if delta > 0 else None
    return number if seconds else number / 1000.0


def _headers_of(error: BaseException) -> list[Mapping[str, Any]]:
    sources = []
    response = getattr(error, "response", None)
    if response is not None and getattr(response, "headers", None) is not None:
        sources.append(response.headers)
    headers = getattr(error, "headers", None)
    if isinstance(headers, Mapping):
        sources.append(headers)
    return sources


def retry_after_seconds(error: BaseException) -> float | None:
    """Retry delay advertised by the provider, if any."""
    for headers in _headers_of(error):
        for key, in_seconds in _RETRY_AFTER_HEADERS:
            value = headers.get(key)
            if value is not None:
                return _parse_retry_after(value, in_seconds)
    for attr in ("retry_after_ms", "retry_after"):
        value = getattr(error, attr, None)
        if value is not None:
            return _parse_retry_after(value, attr == "retry_after")
    return None


def backoff_seconds(error: BaseException) -> float:
    retry_after = retry_after_seconds(error)
    if retry_after is None:
        return DEFAULT_BACKOFF_SECONDS
    return max(MIN_BACKOFF_SECONDS, min(retry_after, MAX_BACKOFF_SECONDS))


class CircuitBreaker:
    """
    Process-wide rate-limit state, passed explicitly to whoever calls the LLM.

    Only rate-limit errors open the breaker; timeouts and schema failures are
    recorded but leave it closed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._open_until = 0.0
        self.failures = 0

    def is_open(self) -> bool:
        return self._clock() < self._open_until

    def record_failure(self, error: BaseException) -> None:
        self.failures += 1
        if not is_rate_limit_error(error):
            return
        backoff = backoff_seconds(error)
        self._open_until = max(self._open_until, self._clock() + backoff)
        logger.warning("LLM rate limited; skipping LLM calls for %.0fs", backoff)

    def record_success(self) -> None:
        self.failures = 0

    def reset(self) -> None:
        self._open_until = 0.0
        self.failures = 0

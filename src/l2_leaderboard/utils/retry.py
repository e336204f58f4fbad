"""
retry.py
--------
Exponential back-off for outbound RPC calls.

Public RPC endpoints throttle aggressively. `RetryPolicy` wraps any callable
and retries it only while the failure looks like a rate-limit answer; every
other error propagates on the first attempt.

# Usage:
# >>> policy = RetryPolicy(max_retries=5, base_delay=1.0)
# >>> latest = policy.call(lambda: w3.eth.block_number)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

import requests

from l2_leaderboard.config import settings
from l2_leaderboard.utils.errors import RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_CODE = "429"
RATE_LIMIT_MESSAGE = "Too Many Requests"


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* looks like an HTTP 429 / throttling response.

    Matches an error carrying ``code == "429"``, a ``requests.HTTPError``
    whose response status is 429 (what web3's ``HTTPProvider`` raises), or
    any error whose message mentions "Too Many Requests".
    """
    code = getattr(exc, "code", None)
    if code is not None and str(code) == RATE_LIMIT_CODE:
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        if exc.response.status_code == 429:
            return True
    return RATE_LIMIT_MESSAGE in str(exc)


class RetryPolicy:
    """Retry a callable with exponential back-off on retryable errors.

    Parameters
    ----------
    max_retries : int
        Total number of attempts, including the first one.
    base_delay : float
        Wait in seconds after the first failure; doubles on every attempt
        (``base_delay * 2**attempt``).
    is_retryable : callable
        Predicate deciding which exceptions are worth another attempt.
    sleep : callable
        Injected for tests; defaults to :func:`time.sleep`.
    """

    def __init__(
        self,
        max_retries: int = settings.RETRY_MAX_ATTEMPTS,
        base_delay: float = settings.RETRY_BASE_DELAY,
        is_retryable: Callable[[BaseException], bool] = is_rate_limit_error,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.is_retryable = is_retryable
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn``; retry while ``is_retryable`` accepts the failure.

        Once the attempts run out, a rate-limit failure is raised as
        :class:`RateLimited` (chained to the upstream error); any other
        retryable failure is re-raised unchanged.
        """
        attempt = 0
        while True:
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                attempt += 1
                if attempt >= self.max_retries:
                    if is_rate_limit_error(exc):
                        raise RateLimited(
                            f"Still rate limited after {attempt} attempts: {exc}"
                        ) from exc
                    raise
                wait = self.delay_for(attempt - 1)
                logger.warning(
                    "Rate limited (attempt %d/%d), retrying in %.1fs",
                    attempt,
                    self.max_retries,
                    wait,
                )
                self.sleep(wait)

    def __call__(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return self.call(fn, *args, **kwargs)


def with_retry(
    fn: Callable[[], T],
    max_retries: int = settings.RETRY_MAX_ATTEMPTS,
    base_delay: float = settings.RETRY_BASE_DELAY,
) -> T:
    """One-shot helper: run ``fn`` under a default :class:`RetryPolicy`."""
    return RetryPolicy(max_retries=max_retries, base_delay=base_delay).call(fn)

"""
Rate Limiter Module - Per-address request throttling
====================================================

This module provides the relay's best-effort rate limiting:
- One fixed window per caller address
- Window restarts once it is older than the window length
- Bounded address table with least-recently-seen eviction
"""

import time
import threading
from collections import OrderedDict
from typing import Callable, Dict, Optional
from dataclasses import dataclass

from .logging import get_logger

logger = get_logger("rate_limiter")


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    Attributes:
        allowed (bool): Whether the request is allowed
        remaining (int): Number of requests remaining in window
        reset_at (float): Unix timestamp when limit resets
        retry_after (float): Seconds to wait before retry (if blocked)
    """
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: float = 0.0


@dataclass
class RateWindow:
    """
    Counter for one address.

    Attributes:
        window_start (float): When the current window opened
        count (int): Requests seen in the current window
    """
    window_start: float
    count: int = 0


class RateLimiter:
    """
    Per-address request limiter for the order relay.

    Every inbound request counts, allowed or not. A window is reset only
    when the current time is strictly past ``window_start + window_seconds``.
    Counters live in process memory, so a restart clears them.

    Example:
        limiter = RateLimiter(window_seconds=60, max_requests=30)

        result = limiter.check_and_record("203.0.113.9")
        if not result.allowed:
            # respond 429
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 30,
        max_tracked_addresses: int = 10_000,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize rate limiter.

        Args:
            window_seconds: Window duration in seconds
            max_requests: Requests allowed per address per window
            max_tracked_addresses: Address table size before eviction
            clock: Time source, defaults to ``time.time``
        """
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.max_tracked_addresses = max_tracked_addresses
        self._clock = clock or time.time

        self._windows: "OrderedDict[str, RateWindow]" = OrderedDict()
        self._lock = threading.Lock()

        logger.info(
            "Rate limiter initialized",
            extra={
                "window_seconds": window_seconds,
                "max_requests": max_requests,
                "max_tracked_addresses": max_tracked_addresses
            }
        )

    def check_and_record(self, address: str) -> RateLimitResult:
        """
        Count a request from ``address`` and report whether it may proceed.

        Args:
            address: Caller network address

        Returns:
            RateLimitResult with check outcome
        """
        now = self._clock()

        with self._lock:
            window = self._windows.get(address)
            if window is None:
                window = RateWindow(window_start=now)
                self._windows[address] = window
                self._evict()
            else:
                self._windows.move_to_end(address)

            if now - window.window_start > self.window_seconds:
                window.window_start = now
                window.count = 0

            window.count += 1
            count = window.count
            reset_at = window.window_start + self.window_seconds

        if count <= self.max_requests:
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - count,
                reset_at=reset_at
            )

        logger.debug(
            f"Rate limit exceeded for {address}",
            extra={"count": count, "limit": self.max_requests}
        )
        return RateLimitResult(
            allowed=False,
            remaining=0,
            reset_at=reset_at,
            retry_after=max(0.0, reset_at - now)
        )

    def _evict(self) -> None:
        """Drop least recently seen addresses beyond the table limit. Caller holds the lock."""
        removed = 0
        while len(self._windows) > self.max_tracked_addresses:
            self._windows.popitem(last=False)
            removed += 1
        if removed:
            logger.debug(f"Evicted {removed} rate limit window(s)")

    def get_status(self, address: str) -> Dict:
        """
        Get rate limit status for an address without counting a request.

        Args:
            address: Caller network address

        Returns:
            Dictionary with rate limit status information
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(address)
            if window is None or now - window.window_start > self.window_seconds:
                count = 0
            else:
                count = window.count

        return {
            "address": address,
            "count": count,
            "limit": self.max_requests,
            "window_seconds": self.window_seconds,
        }

    @property
    def tracked_addresses(self) -> int:
        """Number of addresses currently holding a window."""
        with self._lock:
            return len(self._windows)

    def reset(self, address: Optional[str] = None) -> None:
        """
        Reset rate limits for an address or all.

        Args:
            address: Specific address, or None for all
        """
        with self._lock:
            if address:
                self._windows.pop(address, None)
            else:
                self._windows.clear()

        logger.info(f"Reset rate limits for {address or 'all addresses'}")

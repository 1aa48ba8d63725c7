"""Per-client token bucket rate limiter.

Each client key (service key or source IP) gets its own bucket with
``max_tokens`` capacity refilled at ``max_tokens / interval`` tokens per second.
``try_acquire`` never blocks: it either spends a token or reports how long the
caller has to wait, which the middleware turns into a 429 error envelope.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class TokenBucket:
    """Token bucket state for a single client."""

    client: str
    tokens: float
    max_tokens: int
    refill_rate: float  # tokens per second
    last_refill: float  # time.monotonic()


class ClientRateLimiter:
    """Per-client token bucket rate limiter.

    Args:
        tokens: Max tokens (burst size) per client bucket.
        interval_seconds: Time to refill an empty bucket completely.
    """

    def __init__(self, tokens: int = 120, interval_seconds: int = 60) -> None:
        if tokens < 1 or interval_seconds < 1:
            raise ValueError("tokens and interval_seconds must be positive")
        self._tokens = tokens
        self._interval = interval_seconds
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    @property
    def refill_rate(self) -> float:
        return self._tokens / self._interval

    def _get_or_create_bucket(self, client: str, now: float) -> TokenBucket:
        bucket = self._buckets.get(client)
        if bucket is None:
            bucket = TokenBucket(
                client=client,
                tokens=float(self._tokens),
                max_tokens=self._tokens,
                refill_rate=self.refill_rate,
                last_refill=now,
            )
            self._buckets[client] = bucket
        return bucket

    @staticmethod
    def _refill(bucket: TokenBucket, now: float) -> None:
        elapsed = now - bucket.last_refill
        if elapsed <= 0:
            return
        bucket.tokens = min(bucket.tokens + elapsed * bucket.refill_rate, float(bucket.max_tokens))
        bucket.last_refill = now

    def try_acquire(self, client: str) -> float:
        """Spend one token for ``client``.

        Returns 0.0 when the request may proceed, otherwise the number of
        seconds until a token becomes available.
        """
        with self._lock:
            now = time.monotonic()
            bucket = self._get_or_create_bucket(client, now)
            self._refill(bucket, now)

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return 0.0

            wait_time = (1.0 - bucket.tokens) / bucket.refill_rate
            logger.debug("Rate limit hit for client %s, retry in %.2fs", client, wait_time)
            return wait_time

    def prune(self, max_idle_seconds: float) -> int:
        """Drop buckets untouched for ``max_idle_seconds``; returns how many."""
        with self._lock:
            cutoff = time.monotonic() - max_idle_seconds
            stale = [key for key, bucket in self._buckets.items() if bucket.last_refill < cutoff]
            for key in stale:
                del self._buckets[key]
        return len(stale)

    def get_stats(self) -> dict:
        """Current limiter configuration and number of tracked clients."""
        return {
            "tracked_clients": len(self._buckets),
            "max_tokens": self._tokens,
            "refill_rate": self.refill_rate,
        }

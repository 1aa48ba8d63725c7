"""Resilience components for the envelope service."""

from src.resilience.rate_limiter import ClientRateLimiter, TokenBucket

__all__ = [
    "ClientRateLimiter",
    "TokenBucket",
]

"""Rate limiting for destination writes.

Fixed-interval pacing over a shared monotonic cursor; no background threads.
"""

from ferryman.core.rate_limit.limiter import AtomicCursor, RateLimiter

__all__ = ["AtomicCursor", "RateLimiter"]

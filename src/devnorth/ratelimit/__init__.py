"""Sliding-window request rate limiting."""

from devnorth.ratelimit.limiter import RateLimiter, RateLimitPolicy

__all__ = ["RateLimiter", "RateLimitPolicy"]

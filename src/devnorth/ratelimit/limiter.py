"""In-process sliding-window rate limiter.

Learn: For every (identity, resource) pair we keep the timestamps of the
requests we admitted. A new request is admitted only if fewer than
``max_requests`` of those timestamps fall inside the trailing window.
Unlike per-minute counters, a true sliding window has no burst at the
bucket boundary: 10/min can never become 20 in two seconds around :00.

Concurrency: one lock covers the whole check-and-record sequence
(policy lookup → prune → compare → append). Two callers can therefore
never both see "2 of 3 used" and both get admitted. A single global
lock is fine at this scale; the critical section is O(requests in the
window for one key). Sharding the lock per key is the next step if it
ever shows up as contention.

Memory: windows are pruned lazily, only when their key is checked again.
To stop idle identities from piling up, at most ``max_tracked_keys``
windows are kept; beyond that the least recently used one is dropped.
Dropping a window can only make the limiter more permissive for that key,
never admit past the limit for keys still tracked.

State lives on the instance (injected via app.state), never in a module
global. Redis-backed coordination across processes is out of scope.
"""

import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Mapping, Optional

import structlog

from devnorth.errors import InvalidRateLimitPolicyError

logger = structlog.get_logger()

DEFAULT_MAX_TRACKED_KEYS = 10_000


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most ``max_requests`` admitted per trailing ``window``."""

    max_requests: int
    window: timedelta

    def __post_init__(self):
        if isinstance(self.max_requests, bool) or not isinstance(self.max_requests, int):
            raise InvalidRateLimitPolicyError("max_requests must be an integer")
        if self.max_requests < 0:
            raise InvalidRateLimitPolicyError("max_requests must not be negative")
        if not isinstance(self.window, timedelta):
            raise InvalidRateLimitPolicyError("window must be a timedelta")
        if self.window <= timedelta(0):
            raise InvalidRateLimitPolicyError("window must be positive")

    @property
    def window_seconds(self) -> float:
        return self.window.total_seconds()


class RateLimiter:
    """Per-identity, per-resource sliding-window admission control."""

    def __init__(
        self,
        limits: Optional[Mapping[str, RateLimitPolicy]] = None,
        *,
        max_tracked_keys: int = DEFAULT_MAX_TRACKED_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_tracked_keys < 1:
            raise InvalidRateLimitPolicyError("max_tracked_keys must be at least 1")
        self.max_tracked_keys = max_tracked_keys
        self._clock = clock
        self._lock = threading.Lock()
        self._limits: dict[str, RateLimitPolicy] = _checked_limits(limits or {})
        self._windows: OrderedDict[tuple[str, str], deque[float]] = OrderedDict()

    def allow(self, identity: str, resource: str) -> bool:
        """Admit (True) or reject (False) one request.

        Resources without a policy are always admitted.
        """
        with self._lock:
            policy = self._limits.get(resource)
            if policy is None:
                return True

            now = self._clock()
            key = (identity, resource)
            history = self._windows.get(key)
            if history is None:
                history = deque()
                self._windows[key] = history
                self._evict_idle()
            else:
                self._windows.move_to_end(key)

            cutoff = now - policy.window_seconds
            while history and history[0] <= cutoff:
                history.popleft()

            if len(history) >= policy.max_requests:
                logger.debug(
                    "ratelimit.rejected",
                    resource=resource,
                    limit=policy.max_requests,
                    window_seconds=policy.window_seconds,
                )
                return False

            history.append(now)
            return True

    def add_limits(self, limits: Mapping[str, RateLimitPolicy]) -> None:
        """Add or replace policies. Existing policies are never removed here."""
        checked = _checked_limits(limits)
        with self._lock:
            self._limits.update(checked)

    def retry_after(self, identity: str, resource: str) -> float:
        """Seconds until ``identity`` frees a slot on ``resource`` (0 if free now)."""
        with self._lock:
            policy = self._limits.get(resource)
            history = self._windows.get((identity, resource))
            if policy is None:
                return 0.0
            if policy.max_requests == 0:
                return policy.window_seconds
            if not history:
                return 0.0
            now = self._clock()
            live = [ts for ts in history if ts > now - policy.window_seconds]
            if len(live) < policy.max_requests:
                return 0.0
            # The slot opens when the oldest entry that keeps us at the limit expires.
            oldest_blocking = live[len(live) - policy.max_requests]
            return max(0.0, oldest_blocking + policy.window_seconds - now)

    @property
    def limits(self) -> dict[str, RateLimitPolicy]:
        with self._lock:
            return dict(self._limits)

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def _evict_idle(self) -> None:
        # Caller holds the lock.
        while len(self._windows) > self.max_tracked_keys:
            self._windows.popitem(last=False)


def _checked_limits(limits: Mapping[str, RateLimitPolicy]) -> dict[str, RateLimitPolicy]:
    checked = {}
    for resource, policy in limits.items():
        if not isinstance(resource, str):
            raise InvalidRateLimitPolicyError(f"resource must be a string, got {resource!r}")
        if not isinstance(policy, RateLimitPolicy):
            raise InvalidRateLimitPolicyError(
                f"policy for {resource!r} must be a RateLimitPolicy, got {type(policy).__name__}"
            )
        checked[resource] = policy
    return checked

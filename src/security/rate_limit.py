"""Fixed-window rate limiting with an adaptive lockout penalty.

Each client key owns a bucket ``{count, expires_at}``:

- no bucket, or an expired one: start a new window with ``count = 1``;
- active window with ``count < base_limit * penalty_multiplier``: increment;
- active window at or over that limit: deny and push the window end out to
  ``now + window_ms * penalty_multiplier``, so clients that keep hammering
  stay locked out.

The per-window budget is therefore ``base_limit * penalty_multiplier`` from
the very first window.
"""

import math
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.core.constants import FORWARDED_FOR_HEADER, MILLISECONDS_PER_SECOND
from src.core.exceptions import RateLimitExceededError
from src.security.chain import Next
from src.security.context import SecurityContext

DEFAULT_PENALTY_MULTIPLIER = 2
DEFAULT_MAX_KEYS = 10_000


def _monotonic_ms() -> float:
    return time.monotonic() * MILLISECONDS_PER_SECOND


@dataclass
class Bucket:
    """Request count for the window ending at ``expires_at`` (milliseconds)."""

    count: int
    expires_at: float


@dataclass(frozen=True)
class Decision:
    """Whether a request was admitted and when its bucket's window ends."""

    allowed: bool
    expires_at: float


class RateLimitStore:
    """Bounded in-memory bucket storage keyed by client.

    When ``max_keys`` distinct keys are held, expired buckets are purged
    first and, if that frees nothing, the least recently created bucket is
    evicted.
    """

    def __init__(self, max_keys: int = DEFAULT_MAX_KEYS) -> None:
        if max_keys < 1:
            raise ValueError(f"max_keys must be at least 1, got {max_keys}")
        self.max_keys = max_keys
        self._buckets: OrderedDict[str, Bucket] = OrderedDict()

    def get(self, key: str) -> Bucket | None:
        return self._buckets.get(key)

    def put(self, key: str, bucket: Bucket, now: float) -> None:
        """Store a new bucket for ``key``, evicting if the store is full."""
        self._buckets.pop(key, None)
        if len(self._buckets) >= self.max_keys:
            self._evict(now)
        self._buckets[key] = bucket

    def _evict(self, now: float) -> None:
        expired = [key for key, b in self._buckets.items() if b.expires_at <= now]
        for key in expired:
            del self._buckets[key]
        if len(self._buckets) >= self.max_keys:
            evicted, _ = self._buckets.popitem(last=False)
            logger.debug("Rate-limit store full, evicted bucket", key=evicted)

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._buckets


class AdaptiveRateLimiter:
    """Throttle clients per key; raises ``RateLimitExceededError`` when over budget.

    The key is the client address, else the ``X-Forwarded-For`` header, else
    the request id.

    Args:
        window_ms: Window length in milliseconds.
        base_limit: Base request budget per window.
        penalty_multiplier: Scales both the budget and the lockout window.
        store: Bucket storage, shared if several limiters must agree.
        clock: Returns the current time in milliseconds.
    """

    name = "AdaptiveRateLimiter"

    def __init__(
        self,
        window_ms: int = 60_000,
        base_limit: int = 100,
        penalty_multiplier: int = DEFAULT_PENALTY_MULTIPLIER,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self.window_ms = window_ms
        self.base_limit = base_limit
        self.penalty_multiplier = penalty_multiplier
        self.store = store if store is not None else RateLimitStore()
        self._clock = clock

    @property
    def dynamic_limit(self) -> int:
        """Requests admitted per active window."""
        return self.base_limit * self.penalty_multiplier

    @staticmethod
    def resolve_key(context: SecurityContext) -> str:
        """Pick the bucket key for a request."""
        if context.client_address is not None:
            return context.client_address
        forwarded_for = context.header(FORWARDED_FOR_HEADER)
        if forwarded_for is not None:
            return forwarded_for
        return context.request_id

    def consume(self, key: str) -> Decision:
        """Count one request against ``key``'s bucket."""
        now = self._clock()
        bucket = self.store.get(key)

        if bucket is None or bucket.expires_at <= now:
            expires_at = now + self.window_ms
            self.store.put(key, Bucket(count=1, expires_at=expires_at), now)
            return Decision(allowed=True, expires_at=expires_at)

        if bucket.count >= self.dynamic_limit:
            bucket.expires_at = now + self.window_ms * self.penalty_multiplier
            return Decision(allowed=False, expires_at=bucket.expires_at)

        bucket.count += 1
        return Decision(allowed=True, expires_at=bucket.expires_at)

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        key = self.resolve_key(context)
        decision = self.consume(key)
        if not decision.allowed:
            retry_after = math.ceil(
                (decision.expires_at - self._clock()) / MILLISECONDS_PER_SECOND
            )
            logger.warning(
                "Rate limit exceeded",
                key=key,
                request_id=context.request_id,
                retry_after_seconds=retry_after,
            )
            raise RateLimitExceededError(retry_after, key)
        await next_()

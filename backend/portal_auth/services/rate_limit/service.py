# portal_auth/services/rate_limit/service.py
from __future__ import annotations

import logging

from portal_auth.core.config import redis_url_from_env
from portal_auth.infra.redis.connection import RedisConnection
from portal_auth.infra.redis.redis_window_counter import RedisWindowCounter
from portal_auth.services._shared.ports import InMemoryWindowCounter, WindowCounter
from portal_auth.services.rate_limit.dto import RateLimitPolicy, RateLimitResult

log = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit:"


class RateLimiter:
    """
    Fixed-window admission control, Redis first, in-process second.

    Responsibilities
    ----------------
    - Count hits per ``rate_limit:<key>`` and answer ``allowed`` while the
      count stays within ``max_attempts``.
    - Never raise because of the counter store: when Redis is missing or
      failing the same algorithm runs on :class:`InMemoryWindowCounter`.

    .. warning::
       The fallback is per process. During an outage every worker enforces
       the quota independently, so N workers admit up to N times the limit.

    :param connection: Owned Redis connection; ``None`` means fallback only.
    :param fallback: In-process counter (injectable for tests).
    """

    def __init__(
        self,
        connection: RedisConnection | None = None,
        *,
        fallback: WindowCounter | None = None,
    ) -> None:
        self.connection = connection or RedisConnection(None)
        self.primary = RedisWindowCounter(self.connection)
        self.fallback = fallback or InMemoryWindowCounter()

    @classmethod
    def from_url(cls, url: str | None) -> RateLimiter:
        return cls(RedisConnection(url))

    @classmethod
    def from_env(cls) -> RateLimiter:
        """Build from ``REDIS_URL`` (or ``KV_URL``)."""
        return cls.from_url(redis_url_from_env())

    # -------------------- API ------------------------

    def check(self, key: str, max_attempts: int, window_ms: int) -> RateLimitResult:
        """
        Count one hit for ``key`` and return the verdict.

        :param key: Caller-chosen key, typically ``"<policy>:<ip>"``.
        :param max_attempts: Hits allowed per window (inclusive).
        :param window_ms: Window length in milliseconds.
        :raises ValueError: For a non-positive quota or window.
        """
        if max_attempts < 1 or window_ms < 1:
            raise ValueError("max_attempts and window_ms must be positive")

        full_key = f"{KEY_PREFIX}{key}"
        outcome = self.primary.hit(full_key, window_ms)
        if outcome.count is not None:
            count, backend = outcome.count, "redis"
        else:
            count, backend = self.fallback.hit(full_key, window_ms), "memory"

        allowed = count <= max_attempts
        if not allowed:
            log.info(
                "rate_limiter.rejected",
                extra={"key": key, "count": count, "backend": backend},
            )
        return RateLimitResult(allowed=allowed, current_count=count, backend=backend)

    def check_policy(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        return self.check(key, policy.max_attempts, policy.window_ms)

    def reset(self, key: str) -> None:
        """Forget ``key`` in both counters (e.g. after a successful login)."""
        full_key = f"{KEY_PREFIX}{key}"
        self.primary.reset(full_key)
        self.fallback.reset(full_key)

    @property
    def backend(self) -> str:
        """Counter expected to serve the next check."""
        return "redis" if self.connection.status in ("connected", "unknown") else "memory"

    def close(self) -> None:
        self.connection.close()

# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import redis  # type: ignore[import-untyped]

from portal_auth.infra.redis.connection import RedisConnection
from portal_auth.services.rate_limit.dto import UNAVAILABLE, CounterOutcome

# ``TTL`` reply for a key that exists without an expiry
NO_EXPIRY = -1


def ttl_seconds(window_ms: int) -> int:
    """Window length rounded up to whole seconds, at least 1."""
    return max(1, -(-window_ms // 1000))


@dataclass(slots=True)
class RedisWindowCounter:
    """
    Fixed-window counter on Redis ``INCR`` + ``EXPIRE``.

    ``INCR`` and ``TTL`` run in one ``MULTI``/``EXEC``. The expiry is set only
    when the key has none: normally the hit that opens the window, or the
    next hit after an ``EXPIRE`` that failed, so an orphaned key can never
    count forever. Later hits never extend a running window.
    Store errors are reported to :attr:`conn` and returned as
    :data:`UNAVAILABLE`, never raised.

    :param conn: Owned connection.
    """

    conn: RedisConnection

    def hit(self, key: str, window_ms: int) -> CounterOutcome:
        client = self.conn.client()
        if client is None:
            return UNAVAILABLE
        try:
            with client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.ttl(key)
                count, ttl = cast(tuple[int, int], pipe.execute())
            if ttl == NO_EXPIRY:
                client.expire(key, ttl_seconds(window_ms))
        except redis.RedisError as exc:
            self.conn.mark_failed(exc)
            return UNAVAILABLE
        self.conn.mark_ok()
        return CounterOutcome(count=int(count))

    def reset(self, key: str) -> bool:
        """Delete ``key``; ``False`` when the store could not be reached."""
        client = self.conn.client()
        if client is None:
            return False
        try:
            client.delete(key)
        except redis.RedisError as exc:
            self.conn.mark_failed(exc)
            return False
        return True

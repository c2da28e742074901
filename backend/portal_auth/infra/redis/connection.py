# comments in English; reST docstrings
from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from redis.backoff import NoBackoff  # type: ignore[import-untyped]
from redis.retry import Retry  # type: ignore[import-untyped]

log = logging.getLogger(__name__)

# Short timeouts: an unreachable store must not stall the request it guards.
SOCKET_TIMEOUT_S = 0.5


def no_retry() -> Retry:
    """Fail on the first error; the fallback answers instead of a backoff sleep."""
    return Retry(NoBackoff(), 0)


class RedisConnection:
    """
    Owned, lazily created Redis client with outage bookkeeping.

    - No URL and no client: logs once, :attr:`configured` is ``False`` for
      the lifetime of the instance.
    - Otherwise the client is built on first use. ``redis-py`` reconnects on
      its own, so a failing store may come back on a later call.
    - :meth:`mark_failed` logs one warning for the lifetime of the instance,
      so a flapping store cannot flood the log. Later outages show up in
      :attr:`status` and at debug level; :meth:`mark_ok` logs each
      (re)connection at info level.

    :param url: ``redis://`` connection string.
    :param client: Pre-built client (e.g. ``fakeredis.FakeRedis``); wins over
        ``url``.
    :param socket_timeout: Connect and read timeout in seconds.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        client: redis.Redis | None = None,
        socket_timeout: float = SOCKET_TIMEOUT_S,
    ) -> None:
        self.url = url
        self.socket_timeout = socket_timeout
        self._client = client
        self._connected = False
        self._failing = False
        self._warned = False
        if client is None and not url:
            log.info("rate_limiter.redis_not_configured")

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.url)

    @property
    def status(self) -> str:
        """``disabled``, ``unknown`` (never used), ``connected`` or ``unavailable``."""
        if not self.configured:
            return "disabled"
        if self._failing:
            return "unavailable"
        return "connected" if self._connected else "unknown"

    def client(self) -> redis.Redis | None:
        """Return the client, building it on first call; ``None`` when unusable."""
        if self._client is None and self.url:
            try:
                pool = redis.ConnectionPool.from_url(
                    self.url,
                    socket_timeout=self.socket_timeout,
                    socket_connect_timeout=self.socket_timeout,
                    retry=no_retry(),
                )
                self._client = redis.Redis(connection_pool=pool, retry=no_retry())
            except ValueError as exc:
                # Malformed URL: behave like an outage rather than crash the guard.
                self.mark_failed(exc)
                return None
        return self._client

    def mark_ok(self) -> None:
        if not self._connected:
            log.info("rate_limiter.redis_connected")
        self._connected = True
        self._failing = False

    def mark_failed(self, exc: BaseException) -> None:
        if not self._warned:
            log.warning(
                "rate_limiter.redis_unavailable",
                extra={"backend": "memory"},
                exc_info=exc,
            )
            self._warned = True
        elif not self._failing:
            log.debug("rate_limiter.redis_unavailable_again", extra={"backend": "memory"})
        self._connected = False
        self._failing = True

    def ping(self) -> bool:
        """Probe the store, updating the outage state."""
        client = self.client()
        if client is None:
            return False
        try:
            client.ping()
        except redis.RedisError as exc:
            self.mark_failed(exc)
            return False
        self.mark_ok()
        return True

    def close(self) -> None:
        """Release the client and its pool; safe to call more than once."""
        client, self._client = self._client, None
        self._connected = False
        if client is None:
            return
        try:
            client.close()
        except redis.RedisError:
            log.debug("rate_limiter.redis_close_failed", exc_info=True)

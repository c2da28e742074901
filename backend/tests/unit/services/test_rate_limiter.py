# tests/unit/services/test_rate_limiter.py
"""
Unit tests for RateLimiter using fakeredis and freezegun.

These tests exercise:
- the fixed-window scenario (5 per 60 s) on Redis and on the fallback
- TTL handling on the Redis key
- graceful degradation: outage, single warning, recovery
- fallback memory bound and reset
"""

from __future__ import annotations

import logging
from datetime import timedelta

import fakeredis
import pytest
import redis
from freezegun import freeze_time

from portal_auth.infra.redis.connection import RedisConnection
from portal_auth.services._shared.ports import InMemoryWindowCounter
from portal_auth.services.rate_limit.policies import POLICIES, get_policy
from portal_auth.services.rate_limit.service import RateLimiter

KEY = "login:1.2.3.4"
FULL_KEY = f"rate_limit:{KEY}"
WINDOW_MS = 60_000
EXPECTED = [(True, 1), (True, 2), (True, 3), (True, 4), (True, 5), (False, 6)]

CONN_LOGGER = "portal_auth.infra.redis.connection"


def _run(limiter: RateLimiter, n: int = 6) -> list[tuple[bool, int]]:
    out = []
    for _ in range(n):
        r = limiter.check(KEY, 5, WINDOW_MS)
        out.append((r.allowed, r.current_count))
    return out


# ------------------------------ Redis path -------------------------------- #
def test_window_scenario_on_redis(limiter, fake_redis):
    assert _run(limiter) == EXPECTED

    # Simulate the window elapsing: the TTL removes the key
    fake_redis.delete(FULL_KEY)
    r = limiter.check(KEY, 5, WINDOW_MS)

    assert (r.allowed, r.current_count, r.backend) == (True, 1, "redis")


def test_ttl_is_set_once_per_window(limiter, fake_redis):
    limiter.check(KEY, 5, WINDOW_MS)
    assert fake_redis.ttl(FULL_KEY) == 60

    fake_redis.expire(FULL_KEY, 30)
    limiter.check(KEY, 5, WINDOW_MS)
    # Later hits never extend the window
    assert fake_redis.ttl(FULL_KEY) <= 30


def test_failed_expire_is_repaired_on_next_hit(limiter, fake_redis, monkeypatch):
    real_expire = fake_redis.expire
    failures = []

    def expire_fails_once(name, time, *args, **kwargs):
        if not failures:
            failures.append(name)
            raise redis.ConnectionError("connection reset")
        return real_expire(name, time, *args, **kwargs)

    monkeypatch.setattr(fake_redis, "expire", expire_fails_once)

    first = limiter.check(KEY, 5, WINDOW_MS)
    assert first.backend == "memory"
    assert fake_redis.ttl(FULL_KEY) == -1

    second = limiter.check(KEY, 5, WINDOW_MS)
    assert (second.backend, second.current_count) == ("redis", 2)
    assert fake_redis.ttl(FULL_KEY) == 60

    # The window now ends like any other and the count starts over
    fake_redis.delete(FULL_KEY)
    assert limiter.check(KEY, 5, WINDOW_MS).current_count == 1


@pytest.mark.parametrize(("window_ms", "ttl"), [(1, 1), (999, 1), (1000, 1), (1500, 2)])
def test_ttl_rounds_up_to_seconds(limiter, fake_redis, window_ms, ttl):
    limiter.check(KEY, 5, window_ms)
    assert fake_redis.ttl(FULL_KEY) == ttl


def test_keys_are_independent(limiter):
    for _ in range(5):
        limiter.check("login:1.1.1.1", 5, WINDOW_MS)
    r = limiter.check("login:2.2.2.2", 5, WINDOW_MS)
    assert r.current_count == 1


def test_counts_are_shared_across_instances(fake_redis):
    """Two workers on the same Redis see one counter."""
    a = RateLimiter(RedisConnection(client=fake_redis))
    b = RateLimiter(RedisConnection(client=fake_redis))
    a.check(KEY, 5, WINDOW_MS)
    assert b.check(KEY, 5, WINDOW_MS).current_count == 2


# ------------------------------ Fallback path ----------------------------- #
def test_window_scenario_on_fallback(limiter, fake_server):
    fake_server.connected = False
    with freeze_time("2024-05-01 12:00:00") as frozen:
        results = _run(limiter)
        frozen.tick(timedelta(seconds=61))
        r = limiter.check(KEY, 5, WINDOW_MS)

    assert results == EXPECTED
    assert (r.allowed, r.current_count, r.backend) == (True, 1, "memory")


def test_fallback_matches_redis_sequence(fake_redis, fake_server):
    on_redis = _run(RateLimiter(RedisConnection(client=fake_redis)))

    fake_server.connected = False
    on_memory = _run(RateLimiter(RedisConnection(client=fake_redis)))

    assert on_redis == on_memory == EXPECTED


def test_same_window_until_expiry_passes():
    with freeze_time("2024-05-01 12:00:00") as frozen:
        limiter = RateLimiter()
        limiter.check(KEY, 1, WINDOW_MS)
        frozen.tick(timedelta(seconds=60))
        assert limiter.check(KEY, 1, WINDOW_MS).allowed is False
        frozen.tick(timedelta(seconds=1))
        assert limiter.check(KEY, 1, WINDOW_MS).current_count == 1


def test_without_url_runs_on_fallback(caplog):
    caplog.set_level(logging.INFO, logger=CONN_LOGGER)

    limiter = RateLimiter.from_url(None)
    r = limiter.check(KEY, 5, WINDOW_MS)

    assert r.backend == "memory"
    assert limiter.backend == "memory"
    assert caplog.messages.count("rate_limiter.redis_not_configured") == 1


def test_from_env_reads_kv_url_fallback(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("KV_URL", "redis://kv.internal:6379/0")
    assert RateLimiter.from_env().connection.url == "redis://kv.internal:6379/0"


def test_malformed_url_degrades_to_fallback():
    limiter = RateLimiter.from_url("not-a-redis-url")
    r = limiter.check(KEY, 5, WINDOW_MS)
    assert (r.allowed, r.backend) == (True, "memory")


def test_per_process_fallback_multiplies_quota(fake_server, fake_redis):
    """During an outage each worker counts alone: 2 workers admit 2 x limit."""
    fake_server.connected = False
    workers = [RateLimiter(RedisConnection(client=fake_redis)) for _ in range(2)]

    admitted = sum(w.check(KEY, 5, WINDOW_MS).allowed for w in workers for _ in range(6))

    assert admitted == 10


# ------------------------------ Outage logging ---------------------------- #
def test_outage_warns_once_and_recovers(limiter, fake_server, caplog):
    caplog.set_level(logging.INFO, logger=CONN_LOGGER)
    limiter.check(KEY, 5, WINDOW_MS)

    fake_server.connected = False
    for _ in range(3):
        assert limiter.check(KEY, 5, WINDOW_MS).backend == "memory"
    assert caplog.messages.count("rate_limiter.redis_unavailable") == 1
    assert limiter.connection.status == "unavailable"
    assert limiter.backend == "memory"

    fake_server.connected = True
    r = limiter.check(KEY, 5, WINDOW_MS)
    assert r.backend == "redis"
    # Redis kept its own count from before the outage
    assert r.current_count == 2
    assert limiter.connection.status == "connected"

    fake_server.connected = False
    limiter.check(KEY, 5, WINDOW_MS)
    assert caplog.messages.count("rate_limiter.redis_unavailable") == 1
    assert limiter.connection.status == "unavailable"


def test_flapping_store_warns_once_per_connection(limiter, fake_server, caplog):
    caplog.set_level(logging.INFO, logger=CONN_LOGGER)

    for _ in range(5):
        fake_server.connected = True
        assert limiter.check(KEY, 50, WINDOW_MS).backend == "redis"
        fake_server.connected = False
        assert limiter.check(KEY, 50, WINDOW_MS).backend == "memory"

    assert caplog.messages.count("rate_limiter.redis_unavailable") == 1
    assert caplog.messages.count("rate_limiter.redis_connected") == 5


def test_check_never_raises_on_store_errors(limiter, fake_server):
    fake_server.connected = False
    for _ in range(20):
        limiter.check(KEY, 5, WINDOW_MS)


@pytest.mark.parametrize(("max_attempts", "window_ms"), [(0, 1000), (5, 0), (-1, -1)])
def test_invalid_policy_arguments(limiter, max_attempts, window_ms):
    with pytest.raises(ValueError):
        limiter.check(KEY, max_attempts, window_ms)


# ------------------------------ Memory bound ------------------------------ #
def test_fallback_sweeps_expired_entries():
    now = [0]
    counter = InMemoryWindowCounter(clock=lambda: now[0])
    for i in range(50):
        counter.hit(f"old:{i}", 1_000)
    now[0] = 500
    counter.hit("live:a", 10_000)
    counter.hit("live:b", 10_000)

    now[0] = 5_000
    counter.hit("fresh", 10_000)

    # 2 unexpired keys + the one just written
    assert len(counter) <= 3


def test_fallback_lookup_does_not_sweep():
    now = [0]
    counter = InMemoryWindowCounter(clock=lambda: now[0])
    counter.hit("a", 1_000)
    counter.hit("b", 10_000)
    now[0] = 2_000
    assert counter.hit("b", 10_000) == 2
    assert len(counter) == 2


# ------------------------------ Reset / close ----------------------------- #
def test_reset_forgets_key_on_both_counters(limiter, fake_redis, fake_server):
    for _ in range(3):
        limiter.check(KEY, 5, WINDOW_MS)
    fake_server.connected = False
    limiter.check(KEY, 5, WINDOW_MS)
    fake_server.connected = True

    limiter.reset(KEY)

    assert fake_redis.get(FULL_KEY) is None
    assert limiter.fallback.expiry_of(FULL_KEY) is None
    assert limiter.check(KEY, 5, WINDOW_MS).current_count == 1


def test_close_is_idempotent_and_limiter_keeps_answering():
    limiter = RateLimiter(RedisConnection(client=fakeredis.FakeRedis()))
    limiter.close()
    limiter.close()
    r = limiter.check(KEY, 5, WINDOW_MS)
    assert (r.allowed, r.backend) == (True, "memory")


# ------------------------------ Policies ---------------------------------- #
def test_policy_table():
    assert (POLICIES["login"].max_attempts, POLICIES["login"].window_ms) == (5, 60_000)
    assert POLICIES["accept_invitation"].max_attempts == 3
    assert POLICIES["verify_email"].window_seconds == 3600


def test_unknown_policy():
    with pytest.raises(KeyError, match="Unknown rate limit policy"):
        get_policy("brute_force")


def test_check_policy(limiter):
    r = limiter.check_policy(KEY, get_policy("accept_invitation"))
    assert (r.allowed, r.current_count) == (True, 1)

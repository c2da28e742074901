"""Process-wide resources owned by the Flask app and their lifecycle."""

from __future__ import annotations

import atexit
import weakref

from flask import Flask, current_app

from portal_auth.infra.redis.connection import RedisConnection
from portal_auth.services.rate_limit.service import RateLimiter

EXTENSION_KEY = "rate_limiter"

# Weak: an app dropped by its owner (e.g. a finished test) frees its limiter.
_limiters: weakref.WeakSet[RateLimiter] = weakref.WeakSet()


def close_limiters() -> None:
    """Close every limiter still alive; runs once at process exit."""
    for limiter in list(_limiters):
        limiter.close()


atexit.register(close_limiters)


def init_app(app: Flask, *, rate_limiter: RateLimiter | None = None) -> None:
    """Build the rate limiter and track it for release at process exit.

    Parameters
    ----------
    app: flask.Flask
        Application owning the limiter. ``REDIS_URL`` selects the shared
        counter store; when unset the limiter runs on its in-process fallback.
    rate_limiter: RateLimiter, optional
        Pre-built limiter (tests inject one over ``fakeredis``).

    Notes
    -----
    The limiter lives in ``app.extensions`` rather than a module global, so
    each app (and each test) owns a fresh instance. A single exit hook covers
    all of them however many apps a process builds.
    """
    limiter = rate_limiter or RateLimiter(RedisConnection(app.config.get("REDIS_URL")))
    app.extensions[EXTENSION_KEY] = limiter
    _limiters.add(limiter)


def get_rate_limiter() -> RateLimiter:
    """Return the current app's limiter."""
    limiter = current_app.extensions.get(EXTENSION_KEY)
    if limiter is None:
        raise RuntimeError("Rate limiter is not initialized. Call init_app() first.")
    return limiter

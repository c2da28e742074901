"""Shared API helpers: JSON responses, timing and the rate-limit guard."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from flask import Flask, Response, current_app, g, jsonify, request

from portal_auth.core.errors import TooManyRequests
from portal_auth.core.extensions import get_rate_limiter
from portal_auth.services.rate_limit.dto import RateLimitResult
from portal_auth.services.rate_limit.policies import get_policy

F = TypeVar("F", bound=Callable[..., Any])


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""
    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def client_ip() -> str:
    """Client address as seen after ``ProxyFix``."""
    return request.remote_addr or "unknown"


def enforce_policy(policy_name: str) -> RateLimitResult:
    """
    Count one hit for ``policy_name`` and the client IP.

    The verdict is kept on ``g.rate_limit`` so the response can advertise the
    remaining quota.

    :raises TooManyRequests: When the quota for the window is exhausted.
    """
    policy = get_policy(policy_name)
    result = get_rate_limiter().check_policy(f"{policy_name}:{client_ip()}", policy)
    g.rate_limit = (policy.max_attempts, result)
    if not result.allowed:
        raise TooManyRequests(
            limit=policy.max_attempts,
            retry_after=policy.window_seconds,
            policy=policy_name,
        )
    return result


def rate_limit(policy_name: str) -> Callable[[F], F]:
    """Guard a view with the named policy."""
    get_policy(policy_name)  # fail at import time on typos

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            enforce_policy(policy_name)
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def install_rate_limit_guard(app: Flask) -> None:
    """
    Guard every path listed in ``RATE_LIMITED_PATHS`` before routing.

    Runs ahead of view dispatch, so the guard also covers routes served by
    blueprints registered later by the host.
    """
    paths: Mapping[str, str] = app.config.get("RATE_LIMITED_PATHS", {})
    for policy_name in paths.values():
        get_policy(policy_name)

    @app.before_request
    def _rate_limit_guard() -> None:
        if request.method == "OPTIONS":
            return None
        policy_name = paths.get(request.path.rstrip("/") or "/")
        if policy_name is not None:
            enforce_policy(policy_name)
        return None

    @app.after_request
    def _rate_limit_headers(response: Response) -> Response:
        state = g.get("rate_limit")
        if state is not None and response.status_code != 429:
            limit, result = state
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(max(0, limit - result.current_count))
        return response

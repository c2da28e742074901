"""Named throttles for authentication-adjacent endpoints."""

from __future__ import annotations

from collections.abc import Mapping

from .dto import RateLimitPolicy

MINUTE_MS = 60_000

# name -> policy (simple, explicit)
POLICIES: Mapping[str, RateLimitPolicy] = {
    "login": RateLimitPolicy(max_attempts=5, window_ms=MINUTE_MS),
    "refresh": RateLimitPolicy(max_attempts=10, window_ms=MINUTE_MS),
    "logout": RateLimitPolicy(max_attempts=10, window_ms=MINUTE_MS),
    "check_email": RateLimitPolicy(max_attempts=5, window_ms=MINUTE_MS),
    "forgot_password": RateLimitPolicy(max_attempts=5, window_ms=5 * MINUTE_MS),
    "reset_password": RateLimitPolicy(max_attempts=5, window_ms=5 * MINUTE_MS),
    "accept_invitation": RateLimitPolicy(max_attempts=3, window_ms=5 * MINUTE_MS),
    "verify_email": RateLimitPolicy(max_attempts=10, window_ms=60 * MINUTE_MS),
    "signup": RateLimitPolicy(max_attempts=5, window_ms=5 * MINUTE_MS),
}


def get_policy(name: str) -> RateLimitPolicy:
    """
    Look a policy up by name.

    :raises KeyError: Unknown policy names are configuration bugs.
    """
    try:
        return POLICIES[name]
    except KeyError:
        raise KeyError(f"Unknown rate limit policy {name!r}") from None

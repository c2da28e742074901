"""Tiny helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any

from portal_auth.core.config import TestingConfig

PORTAL = "https://portal.test/api"
SUPABASE = "https://sb.test"


class PortalTestConfig(TestingConfig):
    """Testing configuration without a shared counter store."""

    REDIS_URL = None
    LOG_LEVEL = "WARNING"


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not escape the block.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc


def identity_payload(**overrides: Any) -> dict[str, Any]:
    """Portal user as the backend serializes it (camelCase)."""
    payload: dict[str, Any] = {
        "id": "usr-1",
        "email": "ana@example.com",
        "firstName": "Ana",
        "lastName": "García",
        "roles": [{"roleType": "super_admin", "scope": "global"}],
        "createdAt": "2024-01-01T00:00:00Z",  # unknown to the client; ignored
    }
    payload.update(overrides)
    return payload


def exchange_payload(access: str = "pt-access", refresh: str = "pt-refresh") -> dict[str, Any]:
    """``POST /v1/auth/supabase/exchange`` success body."""
    return {"accessToken": access, "refreshToken": refresh, "user": identity_payload()}

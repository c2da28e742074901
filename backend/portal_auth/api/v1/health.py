"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app

from portal_auth.api.deps import json_response, timing
from portal_auth.core.extensions import get_rate_limiter

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report liveness and which counter backs the rate limiter.

    The service stays ``ok`` while Redis is down: the limiter keeps
    answering from its in-process fallback.
    """
    limiter = get_rate_limiter()
    limiter.connection.ping()
    payload = {
        "status": "ok",
        "rate_limiter": {
            "backend": limiter.backend,
            "redis": limiter.connection.status,
        },
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)

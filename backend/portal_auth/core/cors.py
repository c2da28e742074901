"""CORS configuration helper for the host API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

# Headers the browser may read on guarded responses
EXPOSED_HEADERS = ["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-Request-ID"]


def init_app(app: Flask) -> None:
    """Configure CORS for ``/api/*`` from ``CORS_ORIGINS``.

    Sibling portal applications share the session cookie, so credentials are
    allowed whenever an explicit origin list is configured. A blank value or
    ``"*"`` allows any origin without credentials.
    """
    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "").split(",") if o.strip()]
    wildcard = not origins or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        expose_headers=EXPOSED_HEADERS,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )

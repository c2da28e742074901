"""Expose the application factory at package level.

``from portal_auth import create_app`` is what ``gunicorn.conf.py`` and the
tests use; the client library lives under :mod:`portal_auth.services.auth`.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]

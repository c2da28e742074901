"""Pytest fixtures for the portal auth core.

Redis is emulated with :mod:`fakeredis`: every test gets its own
``FakeServer``, and flipping ``server.connected`` to ``False`` reproduces an
outage (commands raise ``redis.ConnectionError``) without touching the
network. HTTP collaborators are mocked with :mod:`responses`.
"""

from __future__ import annotations

import fakeredis
import pytest

from portal_auth.factory import create_app
from portal_auth.infra.redis.connection import RedisConnection, no_retry
from portal_auth.services.auth.config import AuthClientConfig
from portal_auth.services.rate_limit.service import RateLimiter
from tests.helpers.utils import PORTAL, SUPABASE, PortalTestConfig


@pytest.fixture
def fake_server():
    """Provide an isolated fakeredis server (toggle ``connected`` for outages)."""
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis(fake_server):
    """Provide a FakeRedis client bound to :func:`fake_server`."""
    return fakeredis.FakeRedis(server=fake_server, retry=no_retry())


@pytest.fixture
def limiter(fake_redis):
    """Rate limiter backed by fakeredis; closed after the test."""
    rl = RateLimiter(RedisConnection(client=fake_redis))
    yield rl
    rl.close()


@pytest.fixture
def app(limiter):
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application wired to the fakeredis-backed :func:`limiter`.
    """
    return create_app(PortalTestConfig, rate_limiter=limiter)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_config(tmp_path) -> AuthClientConfig:
    """Client configuration with files under ``tmp_path`` and in-memory tokens."""
    return AuthClientConfig(
        supabase_url=SUPABASE,
        supabase_anon_key="anon-key",
        portal_api_url=PORTAL,
        token_storage="memory",
        token_file=tmp_path / "tokens.json",
        cookie_jar_file=tmp_path / "cookies.lwp",
        request_timeout=2.0,
    )


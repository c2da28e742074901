# tests/unit/api/test_rate_limit_guard.py
"""
Flask-level rate limiting: the path guard, the view decorator, the 429
problem response and the health endpoint.
"""

from __future__ import annotations

import pytest

from portal_auth.api.deps import json_response, rate_limit

LOGIN = "/api/v1/auth/login"
INVITE = "/api/v1/invitations/accept"


@pytest.fixture
def app(app):
    """Add stand-in auth views; the portal's real controllers live elsewhere."""

    def login():
        return json_response({"ok": True})

    @rate_limit("accept_invitation")
    def accept_invitation():
        return json_response({"ok": True})

    app.add_url_rule(LOGIN, "login", login, methods=["POST"])
    app.add_url_rule(INVITE, "accept_invitation", accept_invitation, methods=["POST"])
    return app


def test_guard_admits_up_to_the_limit_then_rejects(client):
    remaining = []
    for _ in range(5):
        resp = client.post(LOGIN)
        assert resp.status_code == 200
        remaining.append(resp.headers["X-RateLimit-Remaining"])

    blocked = client.post(LOGIN)

    assert remaining == ["4", "3", "2", "1", "0"]
    assert blocked.status_code == 429
    assert blocked.mimetype == "application/problem+json"
    assert blocked.headers["Retry-After"] == "60"
    assert blocked.headers["X-RateLimit-Limit"] == "5"
    assert blocked.headers["X-RateLimit-Remaining"] == "0"
    body = blocked.get_json()
    assert body["status"] == 429
    assert body["code"] == "too_many_requests"
    assert body["details"] == {"policy": "login", "retry_after": 60}
    assert body["instance"] == LOGIN
    assert body["request_id"] == blocked.headers["X-Request-ID"]


def test_guard_keys_on_client_ip(client):
    for _ in range(6):
        client.post(LOGIN, headers={"X-Forwarded-For": "203.0.113.7"})

    other = client.post(LOGIN, headers={"X-Forwarded-For": "203.0.113.8"})

    assert other.status_code == 200


def test_guard_uses_policy_key_in_redis(client, fake_redis):
    client.post(LOGIN, headers={"X-Forwarded-For": "198.51.100.1"})
    assert fake_redis.get("rate_limit:login:198.51.100.1") == b"1"


def test_unguarded_paths_are_not_counted(client, fake_redis):
    for _ in range(10):
        client.get("/api/v1/health")
    assert fake_redis.keys("rate_limit:*") == []


def test_preflight_requests_are_not_counted(client, fake_redis):
    client.options(LOGIN)
    assert fake_redis.keys("rate_limit:*") == []


def test_decorator_applies_named_policy(client):
    statuses = [client.post(INVITE).status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]


def test_guard_keeps_working_during_outage(client, fake_server):
    fake_server.connected = False
    statuses = [client.post(LOGIN).status_code for _ in range(6)]
    assert statuses == [200] * 5 + [429]


def test_unknown_route_still_gets_problem_json(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


# ------------------------------ health ------------------------------------ #
def test_health_reports_redis_backend(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json() == {
        "status": "ok",
        "rate_limiter": {"backend": "redis", "redis": "connected"},
        "version": "dev",
    }


def test_health_reports_fallback_during_outage(client, fake_server):
    fake_server.connected = False
    body = client.get("/api/v1/health").get_json()
    assert body["status"] == "ok"
    assert body["rate_limiter"] == {"backend": "memory", "redis": "unavailable"}


def test_health_without_redis_url():
    from portal_auth.factory import create_app
    from tests.helpers.utils import PortalTestConfig

    body = create_app(PortalTestConfig).test_client().get("/api/v1/health").get_json()
    assert body["rate_limiter"] == {"backend": "memory", "redis": "disabled"}

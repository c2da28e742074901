# portal_auth/infra/storage/cookie_token_store.py
from __future__ import annotations

import logging
import os
from http.cookiejar import LoadError, LWPCookieJar
from pathlib import Path

import requests
from marshmallow import ValidationError

from portal_auth.infra.storage.durable_token_store import DurableTokenStore
from portal_auth.schemas.auth import SessionResponseSchema
from portal_auth.services._shared.ports.token_store import TokenStore
from portal_auth.services.auth.dto import SharedSessionInfo

log = logging.getLogger(__name__)

SESSION_PATH = "/v1/sso/session"

_session_schema = SessionResponseSchema()


class CookieTokenStore:
    """
    Cookie-aware token store and shared-session probe.

    The portal sets its session as an ``httpOnly`` cookie on the shared
    domain. This store keeps those cookies in a cookie jar attached to
    :attr:`http`; they are sent with portal requests but never returned by
    the token getters. Tokens the client manages itself are delegated to
    ``tokens`` (durable file semantics by default).

    When ``cookie_jar_path`` is set the jar is persisted in LWP format, so
    sibling applications pointing at the same file see the same portal
    session, which is what :meth:`check_session` detects.

    :param portal_api_url: Portal API base URL (no trailing slash needed).
    :param cookie_jar_path: Optional persisted cookie jar location.
    :param tokens: Store for client-managed tokens.
    :param http: HTTP session to attach the jar to.
    :param timeout: Per-request timeout in seconds.
    """

    variant = "cookie"

    def __init__(
        self,
        portal_api_url: str,
        *,
        cookie_jar_path: str | os.PathLike[str] | None = None,
        tokens: TokenStore | None = None,
        http: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.portal_api_url = portal_api_url.rstrip("/")
        self.tokens = tokens if tokens is not None else DurableTokenStore()
        self.timeout = timeout
        self.http = http or requests.Session()
        self.cookie_jar_path = Path(cookie_jar_path) if cookie_jar_path is not None else None
        if self.cookie_jar_path is not None:
            self.http.cookies = LWPCookieJar(str(self.cookie_jar_path))  # type: ignore[assignment]
            self.load_cookies()

    # -------------------- cookie jar --------------------

    def load_cookies(self) -> None:
        """Refresh the in-memory jar from disk (cookies set by sibling apps)."""
        jar = self.http.cookies
        if self.cookie_jar_path is None or not isinstance(jar, LWPCookieJar):
            return
        if not self.cookie_jar_path.exists():
            return
        try:
            jar.load(ignore_discard=True)
        except (LoadError, OSError):
            log.warning("session_probe.cookie_jar_unreadable", exc_info=True)

    def save_cookies(self) -> None:
        """Persist backend-set cookies so sibling apps can reuse the session."""
        jar = self.http.cookies
        if self.cookie_jar_path is None or not isinstance(jar, LWPCookieJar):
            return
        try:
            self.cookie_jar_path.parent.mkdir(parents=True, exist_ok=True)
            jar.save(ignore_discard=True)
            os.chmod(self.cookie_jar_path, 0o600)
        except OSError:
            log.warning("session_probe.cookie_jar_unwritable", exc_info=True)

    # -------------------- TokenStore --------------------

    def set_access_token(self, token: str) -> None:
        self.tokens.set_access_token(token)

    def get_access_token(self) -> str | None:
        return self.tokens.get_access_token()

    def set_refresh_token(self, token: str) -> None:
        self.tokens.set_refresh_token(token)

    def get_refresh_token(self) -> str | None:
        return self.tokens.get_refresh_token()

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self.tokens.set_tokens(access_token, refresh_token)

    def clear_tokens(self) -> None:
        # httpOnly session cookies belong to the backend; it clears them on logout.
        self.tokens.clear_tokens()

    # -------------------- session probe --------------------

    def check_session(self) -> SharedSessionInfo | None:
        """
        Ask the portal whether the cookie jar carries a live session.

        :returns: Session info when the backend answers ``authenticated``;
            ``None`` for 401, an explicit "not authenticated", transport or
            payload errors. Failures are logged, never raised.
        """
        self.load_cookies()
        url = f"{self.portal_api_url}{SESSION_PATH}"
        try:
            resp = self.http.get(url, timeout=self.timeout)
        except requests.RequestException:
            log.info("session_probe.unreachable", exc_info=True)
            return None

        if resp.status_code == 401:
            log.debug("session_probe.no_session", extra={"status": 401})
            return None
        if not resp.ok:
            log.warning("session_probe.bad_status", extra={"status": resp.status_code})
            return None

        try:
            info: SharedSessionInfo = _session_schema.load(resp.json())
        except (ValueError, ValidationError):
            log.warning("session_probe.bad_payload", exc_info=True)
            return None

        if not info.authenticated:
            return None
        self.save_cookies()
        return info

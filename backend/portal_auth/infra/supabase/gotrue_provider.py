# portal_auth/infra/supabase/gotrue_provider.py
from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

import requests
from marshmallow import ValidationError

from portal_auth.schemas.auth import ProviderSessionSchema
from portal_auth.services._shared.errors import ProviderError
from portal_auth.services._shared.ports import IdentityProvider
from portal_auth.services.auth.dto import ProviderSession

log = logging.getLogger(__name__)

_session_schema = ProviderSessionSchema()

# Statuses meaning "the session is already gone" on logout
_ALREADY_SIGNED_OUT = {401, 403, 404}


def _pkce_pair() -> tuple[str, str]:
    """Return ``(verifier, s256 challenge)`` for a PKCE handshake."""
    verifier = secrets.token_urlsafe(48)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def _error_message(resp: requests.Response) -> str:
    """Pull the provider's own message out of an error response, unmodified."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return resp.text or f"HTTP {resp.status_code}"


class GoTrueIdentityProvider(IdentityProvider):
    """
    Supabase Auth (GoTrue) client for the OAuth redirect flow with PKCE.

    The provider session is held in memory on this instance; the portal's
    first-party tokens are what hosts persist.

    :param supabase_url: Project URL, e.g. ``https://xyz.supabase.co``.
    :param anon_key: Public anon key sent as ``apikey`` on every call.
    :param http: Optional HTTP session.
    :param timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        *,
        http: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base = f"{supabase_url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.http = http or requests.Session()
        self.timeout = timeout
        self._verifier: str | None = None
        self._session: ProviderSession | None = None

    # -------------------- helpers --------------------

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    def _post(self, path: str, *, json: dict[str, Any], bearer: str | None = None) -> requests.Response:
        try:
            return self.http.post(
                f"{self.base}{path}",
                json=json,
                headers=self._headers(bearer),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(str(exc)) from exc

    def _token(self, grant_type: str, payload: dict[str, Any]) -> ProviderSession:
        resp = self._post(f"/token?grant_type={grant_type}", json=payload)
        if not resp.ok:
            raise ProviderError(_error_message(resp), status=resp.status_code)
        try:
            return _session_schema.load(resp.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderError("Invalid session payload from identity provider") from exc

    @staticmethod
    def _callback_params(callback_url: str) -> dict[str, str]:
        parts = urlsplit(callback_url)
        params = dict(parse_qsl(parts.query))
        # Implicit-flow tokens and some errors arrive in the fragment.
        params.update(parse_qsl(parts.fragment))
        return params

    # -------------------- API ------------------------

    def sign_in_with_oauth(self, provider: str, *, redirect_to: str) -> str:
        verifier, challenge = _pkce_pair()
        self._verifier = verifier
        query = urlencode(
            {
                "provider": provider,
                "redirect_to": redirect_to,
                "code_challenge": challenge,
                "code_challenge_method": "s256",
            }
        )
        return f"{self.base}/authorize?{query}"

    def complete_sign_in(self, callback_url: str) -> None:
        params = self._callback_params(callback_url)

        if "error" in params or "error_description" in params:
            raise ProviderError(params.get("error_description") or params["error"])

        if "code" in params:
            if not self._verifier:
                raise ProviderError("PKCE code verifier not found in storage")
            self._session = self._token(
                "pkce",
                {"auth_code": params["code"], "code_verifier": self._verifier},
            )
            self._verifier = None
            return

        if "access_token" in params:
            expires_at = params.get("expires_at")
            self._session = ProviderSession(
                access_token=params["access_token"],
                refresh_token=params.get("refresh_token"),
                expires_at=(
                    datetime.fromtimestamp(int(expires_at), tz=timezone.utc)
                    if expires_at and expires_at.isdigit()
                    else None
                ),
            )

    def get_session(self) -> ProviderSession | None:
        s = self._session
        if s is None:
            return None
        if s.expires_at is None or s.expires_at > datetime.now(timezone.utc):
            return s
        if not s.refresh_token:
            self._session = None
            return None
        try:
            self._session = self._token("refresh_token", {"refresh_token": s.refresh_token})
        except ProviderError:
            log.info("identity_provider.refresh_failed", exc_info=True)
            self._session = None
        return self._session

    def sign_out(self) -> None:
        s, self._session = self._session, None
        self._verifier = None
        if s is None:
            return
        resp = self._post("/logout", json={}, bearer=s.access_token)
        if not resp.ok and resp.status_code not in _ALREADY_SIGNED_OUT:
            raise ProviderError(_error_message(resp), status=resp.status_code)

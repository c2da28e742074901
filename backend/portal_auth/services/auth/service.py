# portal_auth/services/auth/service.py
from __future__ import annotations

import logging

import requests
from marshmallow import ValidationError

from portal_auth.infra.storage import CookieTokenStore, build_token_store
from portal_auth.infra.supabase.gotrue_provider import GoTrueIdentityProvider
from portal_auth.schemas.auth import (
    ExchangeResponseSchema,
    PortalIdentitySchema,
    TokenPairSchema,
)
from portal_auth.services._shared.errors import ExchangeError, NoSessionError, TokenStoreError
from portal_auth.services._shared.ports import (
    IdentityProvider,
    MemoryTokenStore,
    TokenStore,
)
from portal_auth.services.auth.config import AuthClientConfig
from portal_auth.services.auth.dto import (
    ExchangeResult,
    PortalIdentity,
    SharedSessionInfo,
    TokenPair,
)

log = logging.getLogger(__name__)

EXCHANGE_PATH = "/v1/auth/supabase/exchange"
ME_PATH = "/v1/users/me"
REFRESH_PATH = "/v1/auth/refresh"

_exchange_schema = ExchangeResponseSchema()
_identity_schema = PortalIdentitySchema()
_pair_schema = TokenPairSchema()


class AuthService:
    """
    Client-side auth façade for applications signing users in to the portal.

    Collaborators
    -------------
    - ``provider``: identity provider client (Supabase Auth by default).
    - ``tokens``: the host's primary :class:`TokenStore`, chosen once via
      configuration. The effective variant is logged for audit.
    - ``session_probe``: a dedicated :class:`CookieTokenStore` that is *always*
      built, whatever ``tokens`` is, so shared-session discovery keeps working
      when a host picks a store that cannot answer it (e.g. ``memory``). Its
      own token slots are in-memory and never written.

    Failure policy
    --------------
    - Provider and exchange failures raise (``ProviderError`` /
      ``ExchangeError``) so the UI can act on them.
    - :meth:`get_current_user` and :meth:`check_shared_session` soft-fail to
      ``None`` and log; callers cannot tell "logged out" from "backend down".
    """

    def __init__(
        self,
        config: AuthClientConfig,
        *,
        identity_provider: IdentityProvider | None = None,
        token_storage: TokenStore | None = None,
    ) -> None:
        """
        Wire the service from configuration.

        :param config: Client configuration.
        :param identity_provider: Provider client; defaults to
            :class:`GoTrueIdentityProvider` built from ``config``.
        :param token_storage: Explicit primary token store; defaults to the
            variant named by ``config.effective_storage``.
        """
        self.cfg = config
        self.provider = identity_provider or GoTrueIdentityProvider(
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.request_timeout,
        )
        self.tokens = token_storage or build_token_store(config.effective_storage, config)
        self.session_probe = CookieTokenStore(
            config.portal_api_url,
            cookie_jar_path=config.cookie_jar_file,
            tokens=MemoryTokenStore(),
            timeout=config.request_timeout,
        )
        # Portal calls share the probe's jar so backend-set session cookies
        # become visible to sibling applications.
        self.http = self.session_probe.http
        log.info("auth.token_storage", extra={"variant": self.storage_variant})

    @property
    def storage_variant(self) -> str:
        """Name of the primary token store variant in effect."""
        return getattr(self.tokens, "variant", type(self.tokens).__name__)

    def _url(self, path: str) -> str:
        return f"{self.cfg.portal_api_url.rstrip('/')}{path}"

    # ------------------------------------------------------------------ #
    # Sign-in
    # ------------------------------------------------------------------ #

    def sign_in(self, provider: str, *, redirect_to: str | None = None) -> str:
        """
        Start the provider redirect handshake.

        :param provider: Provider name, e.g. ``"google"``.
        :param redirect_to: Override of the configured callback URL.
        :returns: URL to redirect the user agent to.
        :raises ProviderError: Provider message, verbatim.
        """
        return self.provider.sign_in_with_oauth(
            provider, redirect_to=redirect_to or self.cfg.callback_url
        )

    def handle_callback(self, callback_url: str | None = None) -> ExchangeResult:
        """
        Turn the provider session into a stored first-party token pair.

        :param callback_url: Full URL the provider redirected back to. When
            given, the provider completes its half of the handshake first.
        :returns: The stored pair and its portal user.
        :raises ProviderError: Provider message, verbatim.
        :raises NoSessionError: No provider session after the redirect.
        :raises ExchangeError: Exchange rejected or unreadable; nothing stored.
        :raises TokenStoreError: The pair could not be written; the store is
            cleared.
        """
        if callback_url is not None:
            self.provider.complete_sign_in(callback_url)

        session = self.provider.get_session()
        if session is None:
            raise NoSessionError()

        result = self._exchange(session.access_token)
        self._persist(result.tokens)
        self.session_probe.save_cookies()
        return result

    def _exchange(self, provider_access_token: str) -> ExchangeResult:
        try:
            resp = self.http.post(
                self._url(EXCHANGE_PATH),
                json={"supabaseAccessToken": provider_access_token},
                timeout=self.cfg.request_timeout,
            )
        except requests.RequestException as exc:
            log.warning("auth.exchange_unreachable", exc_info=True)
            raise ExchangeError() from exc

        if not resp.ok:
            log.warning("auth.exchange_rejected", extra={"status": resp.status_code})
            raise ExchangeError(status=resp.status_code)

        try:
            data = _exchange_schema.load(resp.json())
        except (ValueError, ValidationError) as exc:
            log.warning("auth.exchange_bad_payload", exc_info=True)
            raise ExchangeError() from exc

        return ExchangeResult(
            tokens=TokenPair(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
            ),
            user=data["user"],
        )

    def _persist(self, pair: TokenPair) -> None:
        """Store both tokens or neither."""
        try:
            self.tokens.set_tokens(pair.access_token, pair.refresh_token)
        except Exception:
            self.tokens.clear_tokens()
            raise

    # ------------------------------------------------------------------ #
    # Session state
    # ------------------------------------------------------------------ #

    def is_authenticated(self) -> bool:
        """Whether the *provider* holds a session (not the portal tokens)."""
        return self.provider.get_session() is not None

    def get_current_user(self) -> PortalIdentity | None:
        """
        Fetch the portal user for the stored access token.

        Returns ``None`` without a network call when no token is stored, and
        ``None`` on any transport, status or payload failure (logged).
        """
        token = self.tokens.get_access_token()
        if not token:
            return None
        try:
            resp = self.http.get(
                self._url(ME_PATH),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.cfg.request_timeout,
            )
        except requests.RequestException:
            log.warning("auth.profile_fetch_failed", exc_info=True)
            return None
        if not resp.ok:
            log.info("auth.profile_fetch_rejected", extra={"status": resp.status_code})
            return None
        try:
            return _identity_schema.load(resp.json())
        except (ValueError, ValidationError):
            log.warning("auth.profile_bad_payload", exc_info=True)
            return None

    def check_shared_session(self) -> SharedSessionInfo | None:
        """Ask the dedicated cookie probe; ``None`` means "log in explicitly"."""
        return self.session_probe.check_session()

    def refresh_session(self) -> TokenPair | None:
        """
        Rotate the stored pair through the portal refresh endpoint.

        - No refresh token → ``None``.
        - Any failure (unreachable, rejected, malformed, not storable) → tokens
          are cleared and ``None`` is returned, so the host falls back to
          sign-in.
        """
        rt = self.tokens.get_refresh_token()
        if not rt:
            return None
        try:
            resp = self.http.post(
                self._url(REFRESH_PATH),
                json={"refreshToken": rt},
                timeout=self.cfg.request_timeout,
            )
        except requests.RequestException:
            log.warning("auth.refresh_unreachable", exc_info=True)
            self.tokens.clear_tokens()
            return None

        if not resp.ok:
            log.info("auth.refresh_rejected", extra={"status": resp.status_code})
            self.tokens.clear_tokens()
            return None
        try:
            pair: TokenPair = _pair_schema.load(resp.json())
        except (ValueError, ValidationError):
            log.warning("auth.refresh_bad_payload", exc_info=True)
            self.tokens.clear_tokens()
            return None

        try:
            self._persist(pair)
        except TokenStoreError:
            log.warning("auth.refresh_not_stored", exc_info=True)
            return None
        self.session_probe.save_cookies()
        return pair

    # ------------------------------------------------------------------ #
    # Sign-out
    # ------------------------------------------------------------------ #

    def sign_out(self) -> None:
        """
        Best-effort client-side cleanup.

        Ends the provider session and always clears the token store; provider
        failures are logged, never raised. Server-side revocation of the
        portal session is the backend's job.
        """
        try:
            self.provider.sign_out()
        except Exception:
            log.warning("auth.provider_sign_out_failed", exc_info=True)
        finally:
            self.tokens.clear_tokens()

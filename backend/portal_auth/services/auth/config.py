"""Client-side auth configuration sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from portal_auth.core.config import env_bool

load_dotenv()


@dataclass(frozen=True, slots=True)
class AuthClientConfig:
    """
    Settings for :class:`~portal_auth.services.auth.service.AuthService`.

    :param supabase_url: Identity provider (Supabase) project URL.
    :param supabase_anon_key: Public anon key sent as ``apikey``.
    :param portal_api_url: Base URL for exchange/profile/session calls,
        e.g. ``https://portal.example.com/api``.
    :param app_origin: Origin of the consuming app; the OAuth callback URL is
        built on it.
    :param callback_path: Path receiving the provider redirect.
    :param token_storage: Token store variant name; ``None`` picks ``cookie``
        when shared sessions are enabled, ``durable`` otherwise.
    :param shared_session_enabled: Whether cross-app session sharing is on.
    :param token_file: Location of the durable token file.
    :param cookie_jar_file: Location of the persisted portal cookie jar.
    :param request_timeout: Per-request timeout in seconds.
    """

    supabase_url: str
    supabase_anon_key: str
    portal_api_url: str
    app_origin: str = "http://localhost:5173"
    callback_path: str = "/auth/callback"
    token_storage: str | None = None
    shared_session_enabled: bool = True
    token_file: Path | None = None
    cookie_jar_file: Path | None = None
    request_timeout: float = 10.0

    @property
    def callback_url(self) -> str:
        """Absolute callback URL on the consuming app's origin."""
        return f"{self.app_origin.rstrip('/')}/{self.callback_path.lstrip('/')}"

    @property
    def effective_storage(self) -> str:
        """Variant name actually used for the primary token store."""
        if self.token_storage:
            return self.token_storage.strip().lower()
        return "cookie" if self.shared_session_enabled else "durable"

    @classmethod
    def from_env(cls) -> AuthClientConfig:
        """
        Build the configuration from environment variables.

        Required: ``SUPABASE_URL``, ``SUPABASE_ANON_KEY``, ``PORTAL_API_URL``.

        :raises KeyError: When a required variable is missing.
        """
        token_file = os.getenv("TOKEN_FILE")
        jar_file = os.getenv("COOKIE_JAR_FILE")
        return cls(
            supabase_url=os.environ["SUPABASE_URL"],
            supabase_anon_key=os.environ["SUPABASE_ANON_KEY"],
            portal_api_url=os.environ["PORTAL_API_URL"],
            app_origin=os.getenv("APP_ORIGIN", "http://localhost:5173"),
            callback_path=os.getenv("AUTH_CALLBACK_PATH", "/auth/callback"),
            token_storage=os.getenv("TOKEN_STORAGE") or None,
            shared_session_enabled=env_bool("SHARED_SESSION_ENABLED", True),
            token_file=Path(token_file) if token_file else None,
            cookie_jar_file=Path(jar_file) if jar_file else None,
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
        )

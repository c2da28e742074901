"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def redis_url_from_env() -> str | None:
    """Return the shared-store connection string, if any.

    ``REDIS_URL`` wins; ``KV_URL`` is accepted for hosted key-value
    deployments that only expose that name. Blank values count as unset.
    """
    for name in ("REDIS_URL", "KV_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def parse_path_policies(raw: str) -> dict[str, str]:
    """Parse ``"/api/v1/auth/login=login,/api/v1/auth/refresh=refresh"``.

    Entries without ``=`` or with an empty side are ignored.
    """
    out: dict[str, str] = {}
    for item in raw.split(","):
        path, sep, policy = item.partition("=")
        if sep and path.strip() and policy.strip():
            out[path.strip()] = policy.strip()
    return out


DEFAULT_RATE_LIMITED_PATHS = ",".join(
    [
        "/api/v1/auth/login=login",
        "/api/v1/auth/refresh=refresh",
        "/api/v1/auth/logout=logout",
        "/api/v1/auth/check-email=check_email",
        "/api/v1/auth/forgot-password=forgot_password",
        "/api/v1/auth/reset-password=reset_password",
        "/api/v1/auth/accept-invitation=accept_invitation",
        "/api/v1/auth/verify-email=verify_email",
        "/api/v1/auth/signup=signup",
        "/api/v1/auth/supabase/exchange=login",
    ]
)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing. Defaults to a development-safe
        placeholder and should be overridden in production.
    REDIS_URL: str | None
        Connection string for the shared rate-limit counter store. ``None``
        selects the in-process fallback permanently.
    RATE_LIMITED_PATHS: dict[str, str]
        Request paths guarded before any view runs, mapped to policy names.
    JSON_SORT_KEYS: bool
        Keeps JSON output order stable when ``False``.
    PROPAGATE_EXCEPTIONS: bool
        Controls Flask error propagation.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS. Sibling portal apps
        must be listed explicitly so cookie-carrying requests are accepted.
    DEBUG: bool
        Toggles Flask debug mode.
    TESTING: bool
        Enables Flask testing mode when ``True``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # Rate limiting
    REDIS_URL = redis_url_from_env()
    RATE_LIMITED_PATHS = parse_path_policies(
        os.getenv("RATE_LIMITED_PATHS", DEFAULT_RATE_LIMITED_PATHS)
    )

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default. Without ``REDIS_URL`` the rate limiter
    runs on its in-process counter, which is the expected local setup.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Ignores ``REDIS_URL`` unless ``TEST_REDIS_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    REDIS_URL = os.getenv("TEST_REDIS_URL") or None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug disabled while relying on WSGI-level log configuration for
    noise control.
    """

    DEBUG = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)

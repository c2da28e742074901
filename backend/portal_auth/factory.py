"""Application factory wiring the portal's auth guard."""

from __future__ import annotations

from flask import Flask

from portal_auth.core.config import BaseConfig, get_config
from portal_auth.core.logger import configure_logging, init_app as init_logging
from portal_auth.services.rate_limit.service import RateLimiter


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    rate_limiter: RateLimiter | None = None,
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object or import path; defaults to ``APP_ENV``.
    :param rate_limiter: Pre-built limiter, mainly for tests.
    """
    app = Flask(__name__)
    app.config.from_object(get_config() if config is None else config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from portal_auth.core import proxy

    proxy.init_app(app)

    from portal_auth.core import extensions

    extensions.init_app(app, rate_limiter=rate_limiter)

    init_logging(app)

    from portal_auth.core import cors

    cors.init_app(app)

    from portal_auth.api import init_app as init_api

    init_api(app)

    from portal_auth.core import errors

    errors.init_app(app)

    return app

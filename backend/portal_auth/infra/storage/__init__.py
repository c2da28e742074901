"""
Token store variants and the name registry used to select one.

=========== ======================== ==========================================
name        class                    trade-off
=========== ======================== ==========================================
``memory``  ``MemoryTokenStore``     lost on restart; safest against exfiltration
``session`` ``SessionTokenStore``    lives as long as the browser session
``durable`` ``DurableTokenStore``    survives restarts; readable by the OS user
``cookie``  ``CookieTokenStore``     backend httpOnly cookies + durable tokens
=========== ======================== ==========================================
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from portal_auth.services._shared.ports.token_store import MemoryTokenStore, TokenStore

from .cookie_token_store import CookieTokenStore
from .durable_token_store import DurableTokenStore
from .session_token_store import SessionTokenStore

if TYPE_CHECKING:
    from portal_auth.services.auth.config import AuthClientConfig


def _cookie(cfg: AuthClientConfig) -> TokenStore:
    return CookieTokenStore(
        cfg.portal_api_url,
        cookie_jar_path=cfg.cookie_jar_file,
        tokens=DurableTokenStore(cfg.token_file),
        timeout=cfg.request_timeout,
    )


# Map names -> factories (simple, explicit)
TOKEN_STORE_FACTORIES: Mapping[str, Callable[[AuthClientConfig], TokenStore]] = {
    "memory": lambda cfg: MemoryTokenStore(),
    "session": lambda cfg: SessionTokenStore(),
    "durable": lambda cfg: DurableTokenStore(cfg.token_file),
    "cookie": _cookie,
}


def build_token_store(name: str, cfg: AuthClientConfig) -> TokenStore:
    """
    Build the token store registered under ``name``.

    :raises ValueError: For unknown names; a misconfigured host must not be
        silently given a different variant.
    """
    try:
        factory = TOKEN_STORE_FACTORIES[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(TOKEN_STORE_FACTORIES))
        raise ValueError(f"Unknown token storage {name!r}; expected one of: {known}") from None
    return factory(cfg)


__all__ = [
    "CookieTokenStore",
    "DurableTokenStore",
    "MemoryTokenStore",
    "SessionTokenStore",
    "TOKEN_STORE_FACTORIES",
    "build_token_store",
]

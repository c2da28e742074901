"""
portal_auth.services._shared.ports
==================================

Collection of *ports* (hexagonal interfaces) that define the contracts for
client-side token handling, identity-provider access, and rate-limit counting.

These ports decouple the service layer from concrete implementations of
storage, HTTP identity providers, and counter backends.

Modules
-------
- :mod:`token_store`:
    Defines :class:`~.TokenStore` plus the in-memory :class:`~.MemoryTokenStore` variant.

- :mod:`identity_provider`:
    Defines :class:`~.IdentityProvider` (redirect-based sign-in against the
    external provider) and :class:`~.StubIdentityProvider` for tests.

- :mod:`window_counter`:
    Defines :class:`~.WindowCounter` and the process-local
    :class:`~.InMemoryWindowCounter` used as rate-limit fallback.

Design Notes
------------
Concrete adapters backed by files, cookies, Redis or HTTP live under
``portal_auth.infra``.
"""

from __future__ import annotations

from .identity_provider import IdentityProvider, StubIdentityProvider
from .token_store import MemoryTokenStore, TokenStore
from .window_counter import InMemoryWindowCounter, WindowCounter

__all__ = [
    "TokenStore",
    "MemoryTokenStore",
    "IdentityProvider",
    "StubIdentityProvider",
    "WindowCounter",
    "InMemoryWindowCounter",
]

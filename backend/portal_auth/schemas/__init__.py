"""Convenience exports for wire schemas."""

from __future__ import annotations

from .auth import (
    ExchangeResponseSchema,
    PortalIdentitySchema,
    PortalRoleSchema,
    ProviderSessionSchema,
    SessionResponseSchema,
    TokenPairSchema,
)

__all__ = [
    "ExchangeResponseSchema",
    "PortalIdentitySchema",
    "PortalRoleSchema",
    "ProviderSessionSchema",
    "SessionResponseSchema",
    "TokenPairSchema",
]

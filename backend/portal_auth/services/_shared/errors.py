"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP client types directly. They serve as stable contracts between
adapters, the auth orchestration service, and host applications.

The translation to HTTP responses (RFC 7807), where a host needs it, is
handled by ``portal_auth/core/errors.py``.
"""

from __future__ import annotations


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Hosts render them as they see fit (flash message, problem response...).
    """

    pass


class ProviderError(ServiceError):
    """
    Raised when the identity provider rejects or fails a handshake step.

    The provider's own message is kept verbatim in ``str(exc)`` so the host can
    show actionable guidance (e.g. "Unsupported provider: provider is not
    enabled").

    :param message: Provider message, unmodified.
    :param status: HTTP status returned by the provider, when there was one.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class NoSessionError(ServiceError):
    """Raised when no provider-native session exists after a callback."""

    def __init__(self, message: str = "No session found") -> None:
        super().__init__(message)


class ExchangeError(NoSessionError):
    """
    Raised when the first-party token exchange fails.

    Subclasses :class:`NoSessionError` so callers that only guard against the
    "not signed in" condition handle both uniformly.
    """

    def __init__(self, message: str = "Token exchange failed", *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TokenStoreError(ServiceError):
    """Raised when a token pair could not be written as a whole."""

    def __init__(self, message: str = "Token pair could not be stored") -> None:
        super().__init__(message)


__all__ = ["ServiceError", "ProviderError", "NoSessionError", "ExchangeError", "TokenStoreError"]

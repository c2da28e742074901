# portal_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# --------------------------- Token DTOs ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    First-party token pair issued by the portal.

    :param access_token: Short-lived bearer token for portal API calls.
    :type access_token: str
    :param refresh_token: Long-lived token used to obtain a new pair.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class ProviderSession:
    """
    Identity provider's native session (Supabase Auth).

    :param access_token: Provider access token, exchanged for a portal pair.
    :param refresh_token: Provider refresh token.
    :param expires_at: Absolute expiry (UTC), when the provider reported one.
    :param user_id: Provider-side user id.
    :param email: Provider-side email, if shared.
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    user_id: str | None = None
    email: str | None = None


# --------------------------- Identity DTOs -------------------------------- #


@dataclass(frozen=True, slots=True)
class PortalRole:
    """
    Role assignment of a portal user.

    :param role_type: Role name (e.g. ``"super_admin"``, ``"eor"``).
    :param scope: Scope the role applies to (``"global"``, ``"client"``...).
    """

    role_type: str
    scope: str | None = None


@dataclass(frozen=True, slots=True)
class PortalIdentity:
    """
    Portal user as returned by token exchange and "who am I".

    Read-only from the client's point of view; never cached by this package.
    """

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    roles: tuple[PortalRole, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class SharedSessionInfo:
    """
    Result of a shared-session probe.

    :param authenticated: Whether the backend confirmed a live session.
    :param identity: The session's user, when reported.
    :param expires_at: ISO-8601 session expiry, when reported.
    """

    authenticated: bool
    identity: PortalIdentity | None = None
    expires_at: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class ExchangeResult:
    """
    Outcome of a successful callback: the persisted pair and its user.

    :param tokens: First-party token pair (already stored).
    :param user: Portal identity bound to the pair.
    """

    tokens: TokenPair
    user: PortalIdentity

from __future__ import annotations

from typing import Protocol


class TokenStore(Protocol):
    """
    Storage for the current access/refresh token pair of one client.

    All methods are synchronous and total for valid string input; reads have
    no side effects. After :meth:`clear_tokens` both getters return ``None``.

    :meth:`set_tokens` writes the pair as one unit. It is the only write that
    may raise (:class:`~portal_auth.services._shared.errors.TokenStoreError`),
    so callers learn when a pair did not reach storage.
    """

    variant: str

    def set_access_token(self, token: str) -> None: ...
    def get_access_token(self) -> str | None: ...
    def set_refresh_token(self, token: str) -> None: ...
    def get_refresh_token(self) -> str | None: ...
    def set_tokens(self, access_token: str, refresh_token: str) -> None: ...
    def clear_tokens(self) -> None: ...


class MemoryTokenStore(TokenStore):
    """
    Process-memory token slots.

    Tokens vanish when the process exits, so nothing outside the process can
    read them afterwards. Hosts choosing this variant re-authenticate on every
    restart.
    """

    variant = "memory"

    def __init__(self) -> None:
        self._access: str | None = None
        self._refresh: str | None = None

    def set_access_token(self, token: str) -> None:
        self._access = token

    def get_access_token(self) -> str | None:
        return self._access

    def set_refresh_token(self, token: str) -> None:
        self._refresh = token

    def get_refresh_token(self) -> str | None:
        return self._refresh

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self._access, self._refresh = access_token, refresh_token

    def clear_tokens(self) -> None:
        self._access = None
        self._refresh = None

from __future__ import annotations

from typing import Protocol
from urllib.parse import urlencode

from portal_auth.services._shared.errors import ProviderError
from portal_auth.services.auth.dto import ProviderSession


class IdentityProvider(Protocol):
    """Port for the external identity provider's client (redirect flow)."""

    def sign_in_with_oauth(self, provider: str, *, redirect_to: str) -> str:
        """
        Start a redirect handshake.

        :returns: URL the host must send the user agent to.
        :raises ProviderError: With the provider's message, verbatim.
        """

    def complete_sign_in(self, callback_url: str) -> None:
        """
        Finish the handshake from the URL the provider redirected back to.

        :raises ProviderError: With the provider's message, verbatim.
        """

    def get_session(self) -> ProviderSession | None:
        """Return the current provider-native session, if any."""

    def sign_out(self) -> None:
        """
        Terminate the provider-native session.

        :raises ProviderError: When the provider refuses the request.
        """


class StubIdentityProvider(IdentityProvider):
    """Deterministic provider double used in unit tests."""

    def __init__(
        self,
        *,
        session: ProviderSession | None = None,
        error: str | None = None,
    ) -> None:
        self.session = session
        self.error = error
        self.sign_out_calls = 0
        self.redirects: list[str] = []

    def sign_in_with_oauth(self, provider: str, *, redirect_to: str) -> str:
        if self.error:
            raise ProviderError(self.error)
        self.redirects.append(redirect_to)
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"https://idp.test/authorize?{query}"

    def complete_sign_in(self, callback_url: str) -> None:
        if self.error:
            raise ProviderError(self.error)

    def get_session(self) -> ProviderSession | None:
        return self.session

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.session = None
        if self.error:
            raise ProviderError(self.error)

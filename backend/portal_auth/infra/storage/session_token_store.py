"""Token store scoped to the host's browser session."""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
from typing import Any

ACCESS_KEY = "portal_access_token"
REFRESH_KEY = "portal_refresh_token"

SessionSource = Callable[[], MutableMapping[str, Any]]


def _flask_session() -> MutableMapping[str, Any]:
    from flask import session

    return session


class SessionTokenStore:
    """
    Keep tokens in the per-browser-session mapping of the host.

    With Flask's default cookie session the mapping lives in a signed (not
    encrypted) cookie that is marked non-permanent, so it disappears when the
    browser closes, and its holder can read it while it is open.

    :param source: Zero-argument callable returning the current session
        mapping. Defaults to :data:`flask.session`, which requires a request
        context.
    """

    variant = "session"

    def __init__(self, source: SessionSource | None = None) -> None:
        self._source = source or _flask_session

    def _write(self, key: str, token: str) -> None:
        session = self._source()
        session[key] = token
        # Browser-session lifetime only; never promote to a persistent cookie.
        if hasattr(session, "permanent"):
            session.permanent = False

    def set_access_token(self, token: str) -> None:
        self._write(ACCESS_KEY, token)

    def get_access_token(self) -> str | None:
        return self._source().get(ACCESS_KEY)

    def set_refresh_token(self, token: str) -> None:
        self._write(REFRESH_KEY, token)

    def get_refresh_token(self) -> str | None:
        return self._source().get(REFRESH_KEY)

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self._write(ACCESS_KEY, access_token)
        self._write(REFRESH_KEY, refresh_token)

    def clear_tokens(self) -> None:
        session = self._source()
        session.pop(ACCESS_KEY, None)
        session.pop(REFRESH_KEY, None)

# portal_auth/infra/storage/durable_token_store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from portal_auth.services._shared.errors import TokenStoreError

log = logging.getLogger(__name__)

DEFAULT_TOKEN_FILE = Path.home() / ".portal_auth" / "tokens.json"


class DurableTokenStore:
    """
    JSON-file token store that survives restarts.

    Any process running as the same OS user can read the file, indefinitely.
    Suited to development tools or low-sensitivity apps only.

    Writes go to a temporary sibling file that replaces the target with
    :func:`os.replace`, so readers see either the old or the new pair and a
    clear removes both tokens at once. The file is created with mode ``0600``.

    I/O failures are logged and degrade to "no token" reads / dropped writes
    for the single-token setters. :meth:`set_tokens` writes both tokens in
    one replace and raises :class:`TokenStoreError` when that write fails,
    leaving the previous file untouched.

    :param path: Token file location. Defaults to ``~/.portal_auth/tokens.json``.
    """

    variant = "durable"

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_TOKEN_FILE

    # -------------------- helpers --------------------

    def _load(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            log.warning("token_store.read_failed", extra={"variant": self.variant}, exc_info=True)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            log.warning("token_store.corrupt_file", extra={"variant": self.variant})
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".tokens-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _save(self, data: dict[str, Any]) -> bool:
        try:
            self._write(data)
        except OSError:
            log.warning("token_store.write_failed", extra={"variant": self.variant}, exc_info=True)
            return False
        return True

    def _get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def _set(self, key: str, token: str) -> None:
        data = self._load()
        data[key] = token
        self._save(data)

    # -------------------- API ------------------------

    def set_access_token(self, token: str) -> None:
        self._set("access_token", token)

    def get_access_token(self) -> str | None:
        return self._get("access_token")

    def set_refresh_token(self, token: str) -> None:
        self._set("refresh_token", token)

    def get_refresh_token(self) -> str | None:
        return self._get("refresh_token")

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        if not self._save({"access_token": access_token, "refresh_token": refresh_token}):
            raise TokenStoreError()

    def clear_tokens(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            log.warning("token_store.clear_failed", extra={"variant": self.variant}, exc_info=True)
            # Unlink refused (e.g. read-only dir entry): overwrite with an empty pair.
            self._save({})

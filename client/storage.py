# client/storage.py
"""
Durable token storage.

The browser build kept mario_token / mario_user in localStorage; here the
same two keys live in a small JSON file. A stored token is only a hint:
ClientStore.init revalidates it with the server before trusting it.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

TOKEN_KEY = "mario_token"
USER_KEY = "mario_user"

# Values an older client could have written by accident
_INVALID_TOKENS = {"", "undefined", "null", "None"}


def default_storage_path() -> Path:
    return Path(os.getenv("MARIO_CLIENT_STATE", Path.home() / ".mario" / "session.json"))


class TokenStorage:
    """JSON-file backed key/value store for the auth token and cached user."""

    def __init__(self, path: os.PathLike | None = None) -> None:
        self.path = Path(path) if path is not None else default_storage_path()

    def _read(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable client state %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        # Replace atomically so a crash never leaves half a file
        os.replace(tmp, self.path)

    def get_token(self) -> str | None:
        token = self._read().get(TOKEN_KEY)
        if not isinstance(token, str) or token in _INVALID_TOKENS:
            return None
        return token

    def get_user(self) -> dict | None:
        user = self._read().get(USER_KEY)
        return user if isinstance(user, dict) else None

    def save(self, token: str, user: dict | None) -> None:
        data = self._read()
        data[TOKEN_KEY] = token
        data[USER_KEY] = user
        self._write(data)

    def save_user(self, user: dict) -> None:
        data = self._read()
        data[USER_KEY] = user
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if TOKEN_KEY not in data and USER_KEY not in data:
            return
        data.pop(TOKEN_KEY, None)
        data.pop(USER_KEY, None)
        self._write(data)

"""Local key-value storage and the credential provider built on it.

The client never touches storage directly: it is handed a `CredentialProvider`
and asks it for the token on every request. `StoredCredentials` is the
provider used by the app, backed by any `KeyValueStore`.
"""
from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .logging_conf import get_logger

__all__ = [
    "StorageKeys",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "CredentialProvider",
    "StoredCredentials",
]

logger = get_logger("dining_client.credentials")


class StorageKeys:
    AUTH_TOKEN = "auth_token"
    USER_DATA = "user_data"
    REFRESH_TOKEN = "refresh_token"
    PHONE_NUMBER = "user_phone_number"
    USER_TYPE = "userType"
    IS_LOGGED_IN = "isLoggedIn"
    USER_EMAIL = "userEmail"
    USER_NAME = "userName"
    HAS_USER_PROFILE = "hasUserProfile"
    FORCE_PASSWORD_CHANGE = "forcePasswordChange"
    IS_EMAIL_VERIFIED = "isEmailVerified"
    ADDITIONAL_USER_DATA = "additional_user_data"
    ADDITIONAL_RESTAURANT_DATA = "additional_restaurant_data"


@runtime_checkable
class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def multi_remove(self, keys: Iterable[str]) -> None: ...


class MemoryStore:
    """Dict-backed store; the default for tests and one-shot processes."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class FileStore:
    """Store persisted as a single JSON object on disk.

    Every write rewrites the whole file; reads go through an in-process copy
    so a value is visible right after it is set.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            if self.path.exists():
                raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
                if not isinstance(raw, dict):
                    raise ValueError(f"store file {self.path} does not hold a JSON object")
                self._data = {str(k): str(v) for k, v in raw.items() if v is not None}
            else:
                self._data = {}
        return self._data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._load(), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def get(self, key: str) -> str | None:
        return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    async def remove(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()

    async def multi_remove(self, keys: Iterable[str]) -> None:
        data = self._load()
        removed = [data.pop(k) for k in list(keys) if k in data]
        if removed:
            self._flush()


@runtime_checkable
class CredentialProvider(Protocol):
    """What the API client needs to know about auth: read and purge."""

    async def read_token(self) -> str | None: ...

    async def clear(self) -> None: ...


class StoredCredentials:
    """Credential provider over a key-value store.

    No caching: each `read_token()` goes to the store, so a token written by
    login or purged after a 401 is seen by the very next request.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def read_token(self) -> str | None:
        return await self.store.get(StorageKeys.AUTH_TOKEN)

    async def clear(self) -> None:
        await self.store.multi_remove([StorageKeys.AUTH_TOKEN, StorageKeys.USER_DATA])
        logger.info("credentials.cleared", extra={"event": "credentials_cleared"})

    async def save(self, token: str, user: dict[str, Any] | None = None) -> None:
        await self.store.set(StorageKeys.AUTH_TOKEN, token)
        if user is not None:
            await self.store.set(StorageKeys.USER_DATA, json.dumps(user))

    async def read_user(self) -> dict[str, Any] | None:
        raw = await self.store.get(StorageKeys.USER_DATA)
        if not raw:
            return None
        return json.loads(raw)

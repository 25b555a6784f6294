from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from authsession.core.config.io import atomic_write_json, quarantine_corrupt, read_json_file
from authsession.core.errors import StorageError
from authsession.core.session.models import SessionSnapshot, TokenInfo, User


class KeyValueStore(ABC):
    """
    Durable string key-value storage (localStorage semantics).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def set_many(self, items: Mapping[str, str]) -> None:
        """Write several keys; stores that can do it in one write override this."""
        for k, v in items.items():
            self.set(k, v)


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self.writes += 1

    def set_many(self, items: Mapping[str, str]) -> None:
        self._data.update({k: str(v) for k, v in items.items()})
        self.writes += 1

    def dump(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Single JSON object on disk; every write replaces the file atomically.
    A corrupt file is moved aside and the store starts empty.
    """

    def __init__(self, path: str, *, logger=None):
        self.path = path
        self.logger = logger
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._load()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        with self._lock:
            data = dict(self._data)
            data.update({k: str(v) for k, v in items.items()})
            try:
                atomic_write_json(self.path, data)
            except OSError as e:
                raise StorageError("Unable to persist session.", path=self.path, error=str(e)) from e
            self._data = data

    def _load(self) -> Dict[str, str]:
        rr = read_json_file(self.path)
        if rr.ok:
            return {str(k): str(v) for k, v in rr.data.items() if v is not None}
        if rr.error == "missing":
            return {}
        moved = quarantine_corrupt(self.path)
        if self.logger:
            self.logger.warning(f"Corrupt session store {self.path} ({rr.error}); moved to {moved}, starting empty.")
        return {}


@dataclass(frozen=True)
class SessionKeys:
    prefix: str = "auth__"

    @property
    def user(self) -> str:
        return f"{self.prefix}user"

    @property
    def token(self) -> str:
        return f"{self.prefix}token"

    @property
    def token_expires_in(self) -> str:
        return f"{self.prefix}tokenExpiresIn"

    @property
    def refresh_token_expires_in(self) -> str:
        return f"{self.prefix}refreshTokenExpiresIn"


def _num(raw: Optional[str]) -> float:
    if not raw:
        return 0.0
    try:
        return float(raw)
    except ValueError:
        return 0.0


def _num_str(value: float) -> str:
    v = float(value or 0.0)
    return str(int(v)) if v.is_integer() else repr(v)


class SessionStore:
    """
    Persistence adapter: maps session fields onto the four storage keys.
    """

    def __init__(self, kv: KeyValueStore, *, keys: Optional[SessionKeys] = None):
        self.kv = kv
        self.keys = keys or SessionKeys()

    def load(self) -> SessionSnapshot:
        user: Any = None
        raw_user = self.kv.get(self.keys.user)
        if raw_user:
            try:
                user = json.loads(raw_user)
            except json.JSONDecodeError:
                user = None
        if not isinstance(user, dict):
            user = None
        return SessionSnapshot(
            user=user,
            access_token=self.kv.get(self.keys.token) or None,
            token_expires_at=_num(self.kv.get(self.keys.token_expires_in)),
            refresh_token_expires_at=_num(self.kv.get(self.keys.refresh_token_expires_in)),
        )

    def save_user(self, user: Optional[User]) -> None:
        self.kv.set(self.keys.user, json.dumps(user, ensure_ascii=False, sort_keys=True))

    def save_token(self, info: Optional[TokenInfo]) -> None:
        if info is None:
            token, exp, rexp = "", 0.0, 0.0
        else:
            token, exp, rexp = info.access_token, info.expires_in, info.refresh_token_expires_in
        self.kv.set_many(
            {
                self.keys.token: token,
                self.keys.token_expires_in: _num_str(exp),
                self.keys.refresh_token_expires_in: _num_str(rexp),
            }
        )

from __future__ import annotations

import time
from typing import Callable, Optional

from authsession.core.session.models import SessionSnapshot, TokenInfo, User
from authsession.core.session.store import SessionStore

DEFAULT_REFRESH_MARGIN_SECONDS = 50.0

Clock = Callable[[], float]


class SessionState:
    """
    In-memory session record, seeded from the store and written through on
    every mutation. The only mutators are set_user, set_token and clear.
    """

    def __init__(self, store: SessionStore, *, refresh_margin: float = DEFAULT_REFRESH_MARGIN_SECONDS, clock: Optional[Clock] = None):
        self.store = store
        self.refresh_margin = float(refresh_margin)
        self.clock: Clock = clock or time.time

        snap = store.load()
        self._user: Optional[User] = snap.user
        self._access_token: Optional[str] = snap.access_token or None
        self._token_expires_at: float = float(snap.token_expires_at)
        self._refresh_token_expires_at: float = float(snap.refresh_token_expires_at)
        self.refresh_token_expired: bool = False

    # ---- read side ----
    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def token_expires_at(self) -> float:
        return self._token_expires_at

    @property
    def refresh_token_expires_at(self) -> float:
        return self._refresh_token_expires_at

    @property
    def is_logged_in(self) -> bool:
        return bool(self._access_token)

    @property
    def needs_refresh(self) -> bool:
        if not self._access_token:
            return False
        return self.clock() >= self._token_expires_at - self.refresh_margin

    @property
    def is_expired(self) -> bool:
        return self._token_expires_at < self.clock()

    def seconds_until_refresh(self) -> float:
        return max(0.0, self._token_expires_at - self.clock() - self.refresh_margin)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            user=self._user,
            access_token=self._access_token,
            token_expires_at=self._token_expires_at,
            refresh_token_expires_at=self._refresh_token_expires_at,
        )

    # ---- mutators (persist first) ----
    def set_user(self, user: Optional[User]) -> None:
        self.store.save_user(user)
        self._user = user

    def set_token(self, info: Optional[TokenInfo]) -> None:
        if info is not None and not info.access_token:
            info = None
        self.store.save_token(info)
        if info is None:
            self._access_token = None
            self._token_expires_at = 0.0
            self._refresh_token_expires_at = 0.0
        else:
            self._access_token = info.access_token
            self._token_expires_at = float(info.expires_in)
            self._refresh_token_expires_at = float(info.refresh_token_expires_in)

    def clear(self) -> None:
        self.set_token(None)
        self.set_user(None)

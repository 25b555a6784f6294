from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from authsession.core.session.models import AuthResult, RefreshResult, User


class Transport(ABC):
    """
    Network side of the auth operations.

    Every method raises TransportError on network or server failure; the
    session core never retries.
    """

    name: str = "base"

    @abstractmethod
    async def signin(self, credentials: Dict[str, Any]) -> AuthResult:
        raise NotImplementedError

    @abstractmethod
    async def signup(self, form: Dict[str, Any]) -> AuthResult:
        raise NotImplementedError

    @abstractmethod
    async def fetch_current_user(self) -> User:
        raise NotImplementedError

    @abstractmethod
    async def logout(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def refresh(self) -> RefreshResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None

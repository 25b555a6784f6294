from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class NotificationKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class RouteMeta:
    name: str
    requires_auth: bool = False
    guest_only: bool = False


class Navigator(ABC):
    @abstractmethod
    def current_route(self) -> RouteMeta:
        raise NotImplementedError

    @abstractmethod
    def redirect_to(self, route: str) -> None:
        raise NotImplementedError


class Notifier(ABC):
    @abstractmethod
    def notify(self, kind: NotificationKind, message: str) -> None:
        raise NotImplementedError


@dataclass
class RouteTable(Navigator):
    """
    Headless navigator: a table of known routes plus the current one.
    Unknown route names are treated as public (no auth, not guest-only).
    """

    routes: Dict[str, RouteMeta] = field(default_factory=dict)
    current: str = "/"
    history: List[str] = field(default_factory=list)

    @classmethod
    def default(cls, *, signin: str = "signin", landing: str = "profile", home: str = "/", current: Optional[str] = None) -> "RouteTable":
        table = cls(current=current or home)
        table.add(home)
        table.add(signin, guest_only=True)
        table.add("signup", guest_only=True)
        table.add(landing, requires_auth=True)
        return table

    def add(self, name: str, *, requires_auth: bool = False, guest_only: bool = False) -> None:
        self.routes[name] = RouteMeta(name, requires_auth=requires_auth, guest_only=guest_only)

    def current_route(self) -> RouteMeta:
        return self.routes.get(self.current) or RouteMeta(self.current)

    def redirect_to(self, route: str) -> None:
        self.history.append(route)
        self.current = route


class LogNotifier(Notifier):
    """Notifications routed to the application logger (CLI / headless use)."""

    def __init__(self, logger=None):
        self.logger = logger
        self.sent: List[Tuple[NotificationKind, str]] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.sent.append((kind, message))
        if not self.logger:
            return
        if kind == NotificationKind.ERROR:
            self.logger.error(message)
        else:
            self.logger.info(message)

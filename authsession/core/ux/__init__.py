from __future__ import annotations

from authsession.core.ux.ports import (
    LogNotifier,
    Navigator,
    NotificationKind,
    Notifier,
    RouteMeta,
    RouteTable,
)

__all__ = [
    "LogNotifier",
    "Navigator",
    "NotificationKind",
    "Notifier",
    "RouteMeta",
    "RouteTable",
]

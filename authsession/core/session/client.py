from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from authsession.core.config.models import SessionConfig
from authsession.core.events import EventLogger
from authsession.core.session.machine import SessionMachine
from authsession.core.session.operations import AuthOperations
from authsession.core.session.scheduler import RefreshScheduler
from authsession.core.session.state import Clock, SessionState
from authsession.core.session.store import JsonFileKeyValueStore, KeyValueStore, SessionKeys, SessionStore
from authsession.core.transport.base import Transport
from authsession.core.transport.http import HttpTransport
from authsession.core.ux.ports import LogNotifier, Navigator, Notifier, RouteTable


@dataclass
class SessionClient:
    """
    One fully wired session: state, scheduler, machine, operations.
    """

    cfg: SessionConfig
    session: SessionState
    scheduler: RefreshScheduler
    machine: SessionMachine
    ops: AuthOperations
    transport: Transport

    @classmethod
    def build(
        cls,
        cfg: SessionConfig,
        *,
        transport: Optional[Transport] = None,
        navigator: Optional[Navigator] = None,
        notifier: Optional[Notifier] = None,
        kv: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
        event_logger: Optional[EventLogger] = None,
        logger=None,
    ) -> "SessionClient":
        kv = kv if kv is not None else JsonFileKeyValueStore(cfg.storage.path, logger=logger)
        store = SessionStore(kv, keys=SessionKeys(prefix=cfg.storage.key_prefix))
        session = SessionState(store, refresh_margin=cfg.refresh.margin_seconds, clock=clock)
        if event_logger is None and cfg.logging.events_file:
            event_logger = EventLogger(os.path.join(cfg.logging.log_dir, cfg.logging.events_file))
        if transport is None:
            transport = HttpTransport(cfg.transport, token_provider=lambda: session.access_token, logger=logger)
        if navigator is None:
            navigator = RouteTable.default(signin=cfg.routes.signin, landing=cfg.routes.landing, home=cfg.routes.home)
        scheduler = RefreshScheduler(logger=logger)
        machine = SessionMachine(
            session=session,
            scheduler=scheduler,
            navigator=navigator,
            notifier=notifier or LogNotifier(logger),
            routes=cfg.routes,
            messages=cfg.messages,
            event_logger=event_logger,
            logger=logger,
        )
        ops = AuthOperations(transport=transport, machine=machine, refresh_cfg=cfg.refresh, logger=logger)
        return cls(cfg=cfg, session=session, scheduler=scheduler, machine=machine, ops=ops, transport=transport)

    async def start(self) -> Optional[float]:
        return await self.ops.init()

    async def close(self) -> None:
        await self.scheduler.aclose()
        await self.transport.aclose()

    def status(self) -> dict:
        s = self.session
        return {
            "phase": self.machine.phase.value,
            "logged_in": s.is_logged_in,
            "user": s.user,
            "token_expires_at": s.token_expires_at,
            "refresh_token_expires_at": s.refresh_token_expires_at,
            "needs_refresh": s.needs_refresh,
            "expired": s.is_expired,
            "refresh_token_expired": s.refresh_token_expired,
            "refresh_pending": self.scheduler.pending,
        }

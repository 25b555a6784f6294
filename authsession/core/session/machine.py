from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Union

from authsession.core.config.models import MessagesConfig, RoutesConfig
from authsession.core.errors import StateTransitionError
from authsession.core.events import EventLogger
from authsession.core.session.models import SessionPhase
from authsession.core.session.scheduler import RefreshScheduler
from authsession.core.session.state import SessionState
from authsession.core.trace import resolve_trace_id
from authsession.core.ux.ports import Navigator, NotificationKind, Notifier, RouteMeta


@dataclass(frozen=True)
class Redirect:
    route: str


@dataclass(frozen=True)
class Notify:
    kind: NotificationKind
    message: str


Intent = Union[Redirect, Notify]


# ---- pure transition planning ----
def plan_logged_in(route: RouteMeta, routes: RoutesConfig) -> List[Intent]:
    if route.guest_only:
        return [Redirect(routes.landing)]
    return []


def plan_logged_out(route: RouteMeta, routes: RoutesConfig) -> List[Intent]:
    intents: List[Intent] = []
    if route.requires_auth:
        intents.append(Redirect(routes.signin))
    if route.guest_only:
        intents.append(Redirect(routes.home))
    return intents


def plan_refresh_token_expired(already_latched: bool, messages: MessagesConfig) -> List[Intent]:
    if already_latched:
        return []
    return [Notify(NotificationKind.INFO, messages.relogin_required)]


_ALLOWED: Dict[SessionPhase, Set[SessionPhase]] = {
    SessionPhase.LOGGED_OUT: {SessionPhase.LOGGED_IN, SessionPhase.REFRESH_TOKEN_EXPIRED},
    SessionPhase.LOGGED_IN: {SessionPhase.LOGGED_OUT, SessionPhase.REFRESH_TOKEN_EXPIRED},
    SessionPhase.REFRESH_TOKEN_EXPIRED: {SessionPhase.LOGGED_OUT},
}


class SessionMachine:
    """
    LOGGED_OUT -> LOGGED_IN -> {LOGGED_OUT | REFRESH_TOKEN_EXPIRED -> LOGGED_OUT}

    Each transition mutates the session/scheduler, then applies the intents
    returned by the matching plan_* function.
    """

    def __init__(
        self,
        *,
        session: SessionState,
        scheduler: RefreshScheduler,
        navigator: Navigator,
        notifier: Notifier,
        routes: Optional[RoutesConfig] = None,
        messages: Optional[MessagesConfig] = None,
        event_logger: Optional[EventLogger] = None,
        logger=None,
    ):
        self.session = session
        self.scheduler = scheduler
        self.navigator = navigator
        self.notifier = notifier
        self.routes = routes or RoutesConfig()
        self.messages = messages or MessagesConfig()
        self.event_logger = event_logger
        self.logger = logger
        self._phase = SessionPhase.LOGGED_IN if session.is_logged_in else SessionPhase.LOGGED_OUT

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    # ---- transitions ----
    def enter_logged_in(self) -> None:
        self._set_phase(SessionPhase.LOGGED_IN, {})
        self.session.refresh_token_expired = False
        self.scheduler.arm(self.session)
        self.apply(plan_logged_in(self.navigator.current_route(), self.routes))

    def enter_logged_out(self, manual: bool) -> None:
        self.scheduler.disarm()
        self._set_phase(SessionPhase.LOGGED_OUT, {"manual": bool(manual)})
        self.apply(plan_logged_out(self.navigator.current_route(), self.routes))

    def latch_refresh_token_expired(self) -> bool:
        """Returns False when already latched (duplicate failure, nothing done)."""
        intents = plan_refresh_token_expired(self.session.refresh_token_expired, self.messages)
        if self.session.refresh_token_expired:
            return False
        if self.session.access_token:
            raise StateTransitionError("Refresh-token expiry latched while a token is present.")
        self._set_phase(SessionPhase.REFRESH_TOKEN_EXPIRED, {})
        self.session.refresh_token_expired = True
        self.scheduler.disarm()
        self.apply(intents)
        return True

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.apply([Notify(kind, message)])

    def apply(self, intents: List[Intent]) -> None:
        for intent in intents:
            if isinstance(intent, Redirect):
                self.navigator.redirect_to(intent.route)
            elif isinstance(intent, Notify):
                self.notifier.notify(intent.kind, intent.message)
            self._log("session.intent", {"intent": type(intent).__name__, **intent.__dict__})

    # ---- internals ----
    def _set_phase(self, new_phase: SessionPhase, details: Dict[str, Any]) -> None:
        old = self._phase
        if new_phase != old and new_phase not in _ALLOWED.get(old, set()):
            raise StateTransitionError(f"Invalid transition {old.value} -> {new_phase.value}", state_from=old.value, state_to=new_phase.value)
        self._phase = new_phase
        self._log("session.transition", {"from": old.value, "to": new_phase.value, **details})

    def _log(self, event: str, details: Dict[str, Any]) -> None:
        if self.event_logger is None:
            return
        try:
            self.event_logger.log(resolve_trace_id(), event, details)
        except OSError as e:
            if self.logger:
                self.logger.warning(f"Session event log write failed: {e}")

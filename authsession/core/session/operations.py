from __future__ import annotations

from typing import Any, Dict, Optional

from authsession.core.config.models import RefreshConfig
from authsession.core.errors import TransportError
from authsession.core.session.machine import SessionMachine
from authsession.core.session.models import AuthResult, RefreshResult, RefreshStatus, User
from authsession.core.trace import trace_context
from authsession.core.transport.base import Transport
from authsession.core.ux.ports import NotificationKind


class AuthOperations:
    """
    Sign-in, sign-up, logout, refresh and user fetch.

    Transport calls come first; the session is only touched once a call has
    returned, so a TransportError leaves it exactly as it was.
    """

    def __init__(self, *, transport: Transport, machine: SessionMachine, refresh_cfg: Optional[RefreshConfig] = None, logger=None):
        self.transport = transport
        self.machine = machine
        self.refresh_cfg = refresh_cfg or RefreshConfig()
        self.logger = logger
        machine.scheduler.bind(self.on_refresh_due)

    @property
    def session(self):
        return self.machine.session

    async def init(self) -> Optional[float]:
        """Resume a persisted session: arm the refresh timer for its token."""
        with trace_context():
            return self.machine.scheduler.arm(self.session)

    async def signin(self, credentials: Dict[str, Any]) -> AuthResult:
        with trace_context():
            result = await self.transport.signin(credentials)
            self.logged_in(result)
            return result

    async def signup(self, form: Dict[str, Any]) -> AuthResult:
        with trace_context():
            result = await self.transport.signup(form)
            self.logged_in(result, show_message=False)
            self.machine.notify(NotificationKind.SUCCESS, self.machine.messages.registered)
            return result

    def logged_in(self, result: AuthResult, *, show_message: bool = True) -> None:
        if not result.token_info.access_token:
            raise TransportError("Authentication response carried no access token.")
        self.session.set_token(result.token_info)
        self.session.set_user(result.user)
        self.machine.enter_logged_in()
        if show_message:
            self.machine.notify(NotificationKind.SUCCESS, self.machine.messages.logged_in)

    async def get_user(self) -> User:
        with trace_context():
            user = await self.transport.fetch_current_user()
            self.session.set_user(user)
            return user

    def set_user(self, user: Optional[User]) -> None:
        """Store a user record edited elsewhere (profile form)."""
        self.session.set_user(user)

    async def logout(self) -> None:
        with trace_context():
            await self.transport.logout()
            self.machine.scheduler.disarm()
            self.session.clear()
            self.machine.enter_logged_out(manual=True)
            self.machine.notify(NotificationKind.SUCCESS, self.machine.messages.logged_out)

    async def refresh(self) -> Optional[RefreshResult]:
        with trace_context():
            if not self.session.access_token:
                if self.logger:
                    self.logger.debug("Refresh skipped: no access token.")
                return None
            result = await self.transport.refresh()

            if result.status == RefreshStatus.TOKEN_ALREADY_REFRESHED:
                return result
            if result.status == RefreshStatus.REFRESH_TOKEN_EXPIRED:
                self.refresh_token_expired()
                return result

            info = result.token_info()
            if info is None:
                raise TransportError("Refresh response carried no access token.", endpoint="refresh")
            # logged out while the request was in flight
            if not self.session.access_token:
                if self.logger:
                    self.logger.info("Refresh result dropped: session ended while refreshing.")
                return result
            self.session.set_token(info)
            self.machine.scheduler.arm(self.session)
            return result

    def refresh_token_expired(self) -> None:
        self.session.clear()
        self.machine.latch_refresh_token_expired()
        self.machine.enter_logged_out(manual=False)

    async def on_refresh_due(self) -> None:
        """Timer callback: re-check expiry against the clock, then refresh."""
        session = self.session
        scheduler = self.machine.scheduler
        if not session.access_token:
            return
        if self.refresh_cfg.revalidate_on_fire and not session.needs_refresh:
            scheduler.arm(session)
            return
        try:
            await self.refresh()
        except TransportError as e:
            if self.logger:
                self.logger.warning(f"Token refresh failed: {e}")
            if session.access_token and not session.is_expired:
                scheduler.arm(session, min_delay=self.refresh_cfg.failure_rearm_seconds)
            return

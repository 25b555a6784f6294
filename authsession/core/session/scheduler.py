from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Any, Awaitable, Callable, Optional

from authsession.core.session.state import SessionState

RefreshCallback = Callable[[], Awaitable[Any]]


class RefreshScheduler:
    """
    Single-slot refresh timer.

    The slot holds at most one asyncio task that sleeps until the refresh is
    due and then awaits the refresh callback. arm() and disarm() are the only
    mutators of the slot.
    """

    def __init__(self, on_due: Optional[RefreshCallback] = None, *, logger=None):
        self._on_due = on_due
        self.logger = logger
        self._task: Optional[asyncio.Task] = None
        self.armed_delay: Optional[float] = None

    def bind(self, on_due: RefreshCallback) -> None:
        self._on_due = on_due

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self, session: SessionState, *, min_delay: float = 0.0) -> Optional[float]:
        """
        (Re)schedule the refresh for the session's current token.

        Returns the delay in seconds, or None when there is no token.
        Must be called from inside a running event loop.
        """
        if not session.access_token:
            self.disarm()
            return None
        if self._on_due is None:
            raise RuntimeError("RefreshScheduler has no refresh callback bound")
        delay = max(float(min_delay), session.seconds_until_refresh())
        self.disarm()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._fire_after(delay), name="authsession.refresh_timer")
        self.armed_delay = delay
        if self.logger:
            self.logger.debug(f"Token refresh scheduled in {delay:.1f}s")
        return delay

    def disarm(self) -> None:
        task, self._task = self._task, None
        self.armed_delay = None
        if task is None or task.done():
            return
        # arm/disarm from inside the refresh itself only releases the slot
        if task is asyncio.current_task():
            return
        task.cancel()

    async def aclose(self) -> None:
        task = self._task
        self.disarm()
        if task is not None and task is not asyncio.current_task():
            with suppress(asyncio.CancelledError, Exception):
                await task

    async def _fire_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        on_due = self._on_due
        if on_due is None:
            return
        try:
            await on_due()
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            # nobody awaits the timer task; surface the failure in the log
            if self.logger:
                self.logger.warning(f"Scheduled token refresh failed: {e}")
        finally:
            if self._task is asyncio.current_task():
                self._task = None
                self.armed_delay = None

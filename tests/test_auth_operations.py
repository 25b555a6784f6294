from __future__ import annotations

import asyncio

import pytest

from authsession.core.config.models import SessionConfig
from authsession.core.errors import TransportError
from authsession.core.session.models import RefreshResult, SessionPhase
from authsession.core.ux.ports import NotificationKind

from tests.helpers.fakes import Harness, auth_result, drain, refresh_ok, token, transport_error
from tests.helpers.log_assertions import read_jsonl


def _signed_in(tmp_path, clock, **kw) -> Harness:
    h = Harness.make(tmp_path, clock=clock, **kw)
    h.session.set_token(token(clock, expires_in=3600))
    h.session.set_user({"id": 1})
    return h


def test_signin_logs_in_and_leaves_guest_route(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock, current_route="signin")
        h.transport.queue("signin", auth_result(clock, user={"id": 5}))
        await h.ops.signin({"email": "a@example.com", "password": "pw"})
        assert h.session.is_logged_in is True
        assert h.session.user == {"id": 5}
        assert h.client.machine.phase == SessionPhase.LOGGED_IN
        assert h.navigator.current == "profile"
        assert h.client.scheduler.pending is True
        assert h.notifier.sent == [(NotificationKind.SUCCESS, "Logged in successfully!")]
        await h.client.close()

    asyncio.run(main())


def test_signin_transport_failure_leaves_state_untouched(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock, current_route="signin")
        h.transport.queue("signin", transport_error(401))
        before = h.session.snapshot()
        writes = h.kv.writes
        with pytest.raises(TransportError) as ei:
            await h.ops.signin({"email": "a@example.com", "password": "bad"})
        assert ei.value.status_code == 401
        assert h.session.snapshot() == before
        assert h.kv.writes == writes
        assert h.navigator.current == "signin"
        assert h.notifier.sent == []
        assert h.client.scheduler.pending is False

    asyncio.run(main())


def test_signin_with_empty_token_is_rejected_without_mutation(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock, current_route="signin")
        h.transport.queue("signin", auth_result(clock, user={"id": 1}, value=""))
        before = h.session.snapshot()
        writes = h.kv.writes
        with pytest.raises(TransportError):
            await h.ops.signin({"email": "a@example.com", "password": "pw"})
        assert h.client.machine.phase == SessionPhase.LOGGED_OUT
        assert h.session.is_logged_in is False
        assert h.session.snapshot() == before
        assert h.kv.writes == writes
        assert h.navigator.current == "signin"
        assert h.notifier.sent == []
        assert h.client.scheduler.pending is False

    asyncio.run(main())


def test_signup_emits_registered_instead_of_logged_in(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock, current_route="signup")
        h.transport.queue("signup", auth_result(clock))
        await h.ops.signup({"email": "a@example.com", "password": "pw"})
        assert h.session.is_logged_in is True
        assert h.messages == ["Registered successfully!"]
        assert h.navigator.current == "profile"
        await h.client.close()

    asyncio.run(main())


def test_get_user_touches_only_user(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        tok_before = (h.session.access_token, h.session.token_expires_at)
        h.transport.queue("fetch_current_user", {"id": 1, "name": "New"})
        user = await h.ops.get_user()
        assert user == {"id": 1, "name": "New"}
        assert h.session.user == {"id": 1, "name": "New"}
        assert (h.session.access_token, h.session.token_expires_at) == tok_before

    asyncio.run(main())


def test_set_user_persists(tmp_path, clock):
    h = _signed_in(tmp_path, clock)
    h.ops.set_user({"id": 1, "name": "Edited"})
    assert h.session.store.load().user == {"id": 1, "name": "Edited"}


def test_logout_clears_everything_and_disarms(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock, current_route="signin")
        h.transport.queue("signin", auth_result(clock, expires_in=1050))
        await h.ops.signin({"email": "a@example.com", "password": "pw"})
        assert h.client.scheduler.armed_delay == pytest.approx(1000.0)
        timer = h.client.scheduler._task

        h.transport.queue("logout", None)
        await h.ops.logout()
        assert h.session.access_token is None
        assert h.session.user is None
        assert h.session.is_logged_in is False
        assert h.client.scheduler.pending is False
        await drain()
        assert timer.cancelled()
        # current route was "profile" (requires auth) after signin
        assert h.navigator.current == "signin"
        assert h.messages[-1] == "Logged out successfully."
        assert h.session.refresh_token_expired is False
        assert h.client.machine.phase == SessionPhase.LOGGED_OUT
        assert "refresh" not in h.transport.calls

    asyncio.run(main())


def test_logout_transport_failure_propagates(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        h.transport.queue("logout", transport_error())
        with pytest.raises(TransportError):
            await h.ops.logout()
        assert h.session.is_logged_in is True
        assert h.session.user == {"id": 1}

    asyncio.run(main())


def test_refresh_ok_applies_token_and_rearms(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        h.transport.queue("refresh", refresh_ok(clock, expires_in=600, value="tok-new"))
        result = await h.ops.refresh()
        assert result is not None and result.status == "ok"
        assert h.session.access_token == "tok-new"
        assert h.session.store.load().access_token == "tok-new"
        assert h.client.scheduler.armed_delay == pytest.approx(550.0)
        await h.client.close()

    asyncio.run(main())


def test_refresh_already_refreshed_is_noop(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        before = h.session.snapshot()
        h.transport.queue("refresh", RefreshResult(status="tokenAlreadyRefreshed"))
        await h.ops.refresh()
        assert h.session.snapshot() == before
        assert h.session.refresh_token_expired is False
        assert h.notifier.sent == []

    asyncio.run(main())


def test_refresh_token_expired_forces_logout_once(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        h.navigator.current = "profile"
        h.transport.queue("refresh", RefreshResult(status="refreshTokenExpired"))
        await h.ops.refresh()
        assert h.session.access_token is None
        assert h.session.user is None
        assert h.session.refresh_token_expired is True
        assert h.client.machine.phase == SessionPhase.LOGGED_OUT
        assert h.navigator.current == "signin"
        assert h.notifier.sent == [(NotificationKind.INFO, "Please, log in again")]

        # second trigger while logged out: nothing new
        await h.ops.refresh()
        assert h.notifier.sent == [(NotificationKind.INFO, "Please, log in again")]
        assert h.transport.calls.count("refresh") == 1

    asyncio.run(main())


def test_concurrent_refresh_token_expired_notifies_once(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        h.transport.gate = asyncio.Event()
        h.transport.queue("refresh", RefreshResult(status="refreshTokenExpired"), RefreshResult(status="refreshTokenExpired"))
        t1 = asyncio.create_task(h.ops.refresh())
        t2 = asyncio.create_task(h.ops.refresh())
        await drain()
        h.transport.gate.set()
        await asyncio.gather(t1, t2)
        assert h.messages.count("Please, log in again") == 1
        assert h.session.refresh_token_expired is True
        assert h.client.machine.phase == SessionPhase.LOGGED_OUT

    asyncio.run(main())


def test_manual_vs_forced_logout_latch(tmp_path, clock):
    async def main():
        manual = _signed_in(tmp_path / "m", clock)
        manual.transport.queue("logout", None)
        await manual.ops.logout()

        forced = _signed_in(tmp_path / "f", clock)
        forced.transport.queue("refresh", RefreshResult(status="refreshTokenExpired"))
        await forced.ops.refresh()

        assert manual.client.machine.phase == forced.client.machine.phase == SessionPhase.LOGGED_OUT
        assert manual.session.refresh_token_expired is False
        assert forced.session.refresh_token_expired is True

        # latch stays until the next successful login
        forced.transport.queue("signin", transport_error())
        with pytest.raises(TransportError):
            await forced.ops.signin({"email": "a@example.com", "password": "pw"})
        assert forced.session.refresh_token_expired is True
        forced.transport.queue("signin", auth_result(clock))
        await forced.ops.signin({"email": "a@example.com", "password": "pw"})
        assert forced.session.refresh_token_expired is False
        await forced.client.close()

    (tmp_path / "m").mkdir()
    (tmp_path / "f").mkdir()
    asyncio.run(main())


def test_refresh_result_after_logout_is_dropped(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        h.transport.gate = asyncio.Event()
        h.transport.queue("refresh", refresh_ok(clock))
        h.transport.queue("logout", None)
        pending = asyncio.create_task(h.ops.refresh())
        await drain()
        await h.ops.logout()
        h.transport.gate.set()
        await pending
        assert h.session.access_token is None
        assert h.client.scheduler.pending is False

    asyncio.run(main())


def test_refresh_without_token_skips_transport(harness):
    assert asyncio.run(harness.ops.refresh()) is None
    assert harness.transport.calls == []


def test_init_resumes_persisted_session(tmp_path, clock):
    async def main():
        first = _signed_in(tmp_path, clock)
        resumed = Harness.make(tmp_path, clock=clock, kv=first.kv)
        delay = await resumed.ops.init()
        assert delay == pytest.approx(3550.0)
        assert resumed.client.scheduler.pending is True
        await resumed.client.close()

        empty = Harness.make(tmp_path, clock=clock)
        assert await empty.ops.init() is None
        assert empty.client.scheduler.pending is False

    asyncio.run(main())


def test_scheduled_refresh_runs_when_due(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock)
        h.session.set_token(token(clock, expires_in=40))
        h.transport.queue("refresh", refresh_ok(clock, expires_in=3600, value="tok-auto"))
        await h.ops.init()
        await drain()
        assert h.session.access_token == "tok-auto"
        assert h.client.scheduler.armed_delay == pytest.approx(3550.0)
        await h.client.close()

    asyncio.run(main())


def test_timer_fire_revalidates_expiry(tmp_path, clock):
    async def main():
        h = _signed_in(tmp_path, clock)
        await h.ops.init()
        # timer fires early (e.g. clock moved back): no refresh, just re-arm
        await h.ops.on_refresh_due()
        assert h.transport.calls == []
        assert h.client.scheduler.pending is True
        await h.client.close()

    asyncio.run(main())


def test_failed_scheduled_refresh_rearms_while_token_valid(tmp_path, clock):
    async def main():
        h = Harness.make(tmp_path, clock=clock)
        h.session.set_token(token(clock, expires_in=30))
        h.transport.queue("refresh", transport_error())
        await h.ops.on_refresh_due()
        assert h.session.access_token == "tok-1"
        assert h.client.scheduler.armed_delay == pytest.approx(10.0)

        # once expired, a failure no longer re-arms
        h.client.scheduler.disarm()
        clock.advance(31)
        h.transport.queue("refresh", transport_error())
        await h.ops.on_refresh_due()
        assert h.client.scheduler.pending is False
        await h.client.close()

    asyncio.run(main())


def test_event_log_redacts_credentials(tmp_path, clock):
    async def main():
        cfg = SessionConfig.model_validate({"messages": {"logged_in": "hello"}})
        h = Harness.make(tmp_path, clock=clock, cfg=cfg, current_route="signin")
        h.transport.queue("signin", auth_result(clock))
        await h.ops.signin({"email": "a@example.com", "password": "pw"})
        await h.client.close()

    asyncio.run(main())
    events = read_jsonl(str(tmp_path / "events.jsonl"))
    assert any(e["event"] == "session.intent" and e["details"].get("message") == "hello" for e in events)
    assert "tok-1" not in str(events)

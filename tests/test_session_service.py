"""
tests/test_session_service.py

Session heartbeat scheduling and the cached concurrent-session limit check.
"""

from __future__ import annotations

import pytest

from shopgauge.config import SessionSettings
from shopgauge.services.session_service import (
    LIMIT_UNAVAILABLE_MESSAGE,
    SessionHeartbeat,
    SessionLimitService,
)

HEARTBEAT = "/api/sessions/heartbeat"
LIMIT = "/api/sessions/limit-check"
JOB = "s-1:session-heartbeat"


@pytest.fixture()
def session_settings() -> SessionSettings:
    return SessionSettings(
        heartbeat_interval_seconds=60.0,
        heartbeat_max_retries=3,
        heartbeat_retry_delay_seconds=5.0,
        limit_cache_seconds=300.0,
        idle_timeout_seconds=1800.0,
    )


@pytest.fixture()
def invalidations() -> list[int]:
    return []


@pytest.fixture()
def heartbeat(clients, session_settings, scheduler, clock, invalidations) -> SessionHeartbeat:
    return SessionHeartbeat(
        client=clients.sessions,
        scheduler=scheduler,
        job_id=JOB,
        settings=session_settings,
        on_invalidated=lambda: invalidations.append(1),
        clock=clock,
    )


@pytest.fixture()
def limits(clients, session_settings, sleeps, clock) -> SessionLimitService:
    return SessionLimitService(
        client=clients.sessions,
        settings=session_settings,
        sleep=sleeps.append,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Heartbeat
# ---------------------------------------------------------------------------


class TestHeartbeat:
    def test_start_adds_interval_job(self, heartbeat, scheduler) -> None:
        heartbeat.start()
        assert heartbeat.is_active
        job = scheduler.get_job(JOB)
        assert job.trigger == "interval"
        assert job.trigger_args == {"seconds": 60.0}

    def test_start_is_idempotent(self, heartbeat, scheduler) -> None:
        heartbeat.start()
        heartbeat.start()
        assert list(scheduler.jobs) == [JOB]

    def test_successful_beat_keeps_interval(self, heartbeat, session, respond, scheduler, clock) -> None:
        session.route("POST", HEARTBEAT, respond(200, {"success": True, "sessionId": "s-1"}))
        heartbeat.start()
        scheduler.run(JOB)
        assert heartbeat.last_beat_at == clock.now
        assert heartbeat.last_result.session_id == "s-1"
        assert scheduler.get_job(JOB).trigger_args == {"seconds": 60.0}

    def test_failure_reschedules_to_retry_delay(self, heartbeat, session, respond, scheduler) -> None:
        session.route("POST", HEARTBEAT, respond(503, {}), respond(200, {"success": True}))
        heartbeat.start()
        scheduler.run(JOB)
        assert heartbeat.failures == 1
        assert scheduler.get_job(JOB).trigger_args == {"seconds": 5.0}
        scheduler.run(JOB)
        assert heartbeat.failures == 0
        assert scheduler.get_job(JOB).trigger_args == {"seconds": 60.0}

    def test_success_resets_failures(self, heartbeat, session, respond) -> None:
        session.route(
            "POST",
            HEARTBEAT,
            respond(200, {"success": False, "error": "stale"}),
            respond(200, {"success": True}),
        )
        assert not heartbeat.beat()
        assert heartbeat.failures == 1
        assert heartbeat.beat()
        assert heartbeat.failures == 0

    def test_invalidated_after_max_failures(self, heartbeat, session, respond, scheduler, invalidations) -> None:
        session.route("POST", HEARTBEAT, respond(500, {}))
        heartbeat.start()
        for _ in range(3):
            scheduler.run(JOB)
        assert invalidations == [1]
        assert heartbeat.invalidated
        assert not heartbeat.is_active
        assert scheduler.jobs == {}
        assert scheduler.removed == [JOB]

    def test_stop_removes_job(self, heartbeat, session, scheduler) -> None:
        heartbeat.start()
        heartbeat.stop()
        assert scheduler.jobs == {}
        heartbeat.stop()
        assert scheduler.removed == [JOB]
        assert session.calls == []

    def test_idle_browser_session_stops_heartbeat(self, heartbeat, session, respond, scheduler, clock) -> None:
        session.route("POST", HEARTBEAT, respond(200, {"success": True}))
        heartbeat.start()
        clock.advance(1700)
        heartbeat.touch()
        clock.advance(1700)
        scheduler.run(JOB)
        assert heartbeat.is_active
        clock.advance(1800)
        scheduler.run(JOB)
        assert not heartbeat.is_active
        assert scheduler.jobs == {}
        assert session.paths() == [HEARTBEAT]


# ---------------------------------------------------------------------------
# Session limit
# ---------------------------------------------------------------------------


class TestSessionLimit:
    def test_result_is_cached(self, limits, session, respond, clock) -> None:
        session.route("GET", LIMIT, respond(200, {"limitReached": True, "maxSessions": 2, "currentSessionCount": 2}))
        first = limits.check()
        assert first.limit_reached
        clock.advance(120)
        assert limits.check() is first
        clock.advance(200)
        limits.check()
        assert session.paths().count(LIMIT) == 2

    def test_force_bypasses_cache(self, limits, session, respond) -> None:
        session.route("GET", LIMIT, respond(200, {"maxSessions": 3}))
        limits.check()
        limits.check(force=True)
        assert session.paths().count(LIMIT) == 2

    def test_transient_failures_are_retried(self, limits, session, respond, sleeps) -> None:
        session.route("GET", LIMIT, respond(503, {}), respond(429, {}), respond(200, {"maxSessions": 3}))
        assert limits.check().max_sessions == 3
        assert sleeps == [2.0, 4.0]
        assert limits.error is None

    def test_exhausted_retries_set_error(self, limits, session, respond, sleeps) -> None:
        session.route("GET", LIMIT, respond(500, {}))
        assert limits.check() is None
        assert limits.error == LIMIT_UNAVAILABLE_MESSAGE
        assert sleeps == [2.0, 4.0, 8.0]

    @pytest.mark.parametrize("status", [401, 404])
    def test_missing_information_is_not_an_error(self, limits, session, respond, sleeps, status) -> None:
        session.route("GET", LIMIT, respond(status, {}))
        assert limits.check() is None
        assert limits.error is None
        assert sleeps == []

    def test_terminate_clears_cache(self, limits, session, respond) -> None:
        session.route("GET", LIMIT, respond(200, {"maxSessions": 3}))
        session.route("POST", "/api/sessions/terminate", respond(200, {"success": True}))
        limits.check()
        assert limits.delete_session("abc")
        limits.check()
        assert session.paths().count(LIMIT) == 2

    def test_terminate_others_failure(self, limits, session, respond) -> None:
        session.route("POST", "/api/sessions/terminate-others", respond(500, {}))
        assert not limits.terminate_others()

    def test_active_sessions(self, limits, session, respond) -> None:
        session.queue(
            respond(200, {"sessions": [{"sessionId": "a", "isCurrentSession": True}, {"sessionId": "b"}]})
        )
        rows = limits.active_sessions()
        assert [row.session_id for row in rows] == ["a", "b"]
        assert rows[0].is_current_session

"""Unit tests for the response session registry."""

from datetime import datetime, timedelta, timezone

import pytest

from survey_flow.services.response_collector import Step
from survey_flow.services.session_registry import SessionRegistry
from conftest import FakeGateway, FakeSurveySource


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(three_question_survey, clock) -> SessionRegistry:
    return SessionRegistry(
        source=FakeSurveySource(three_question_survey),
        gateway=FakeGateway(),
        timeout_minutes=30,
        classifier_timeout_seconds=1,
        clock=clock,
    )


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_open_creates_session(self, registry, clock):
        """Test opening a session registers a fresh collector."""
        session = registry.open("tenant-1", "survey-1", honeypot="")

        assert len(registry) == 1
        assert registry.get(session.id) is session
        assert session.collector.tenant_id == "tenant-1"
        assert session.collector.survey_id == "survey-1"
        assert session.collector.step is None
        assert session.created_at == clock.now

    def test_sessions_are_isolated(self, registry):
        """Test each session gets its own collector and id."""
        first = registry.open("tenant-1", "survey-1")
        second = registry.open("tenant-1", "survey-1")

        assert first.id != second.id
        assert first.collector is not second.collector

    def test_anti_abuse_fields_from_open(self, registry, clock):
        """Test the honeypot and open timestamp are captured for submission."""
        session = registry.open("tenant-1", "survey-1", honeypot="filled-by-bot")

        fields = session.collector.anti_abuse
        assert fields.honeypot == "filled-by-bot"
        assert fields.form_timestamp == int(clock.now.timestamp() * 1000)

    def test_get_unknown(self, registry):
        assert registry.get("nope") is None

    def test_discard_closes_collector(self, registry):
        """Test discarding a session closes its collector."""
        session = registry.open("tenant-1", "survey-1")

        assert registry.discard(session.id) is True
        assert session.collector.is_closed
        assert registry.get(session.id) is None
        assert registry.discard(session.id) is False

    def test_idle_sessions_expire(self, registry, clock):
        """Test sessions idle beyond the timeout are discarded."""
        stale = registry.open("tenant-1", "survey-1")
        clock.advance(minutes=20)
        fresh = registry.open("tenant-1", "survey-1")
        clock.advance(minutes=15)

        assert registry.get(stale.id) is None
        assert stale.collector.is_closed
        assert registry.get(fresh.id) is fresh

    def test_get_refreshes_last_seen(self, registry, clock):
        """Test activity keeps a session alive."""
        session = registry.open("tenant-1", "survey-1")
        for _ in range(3):
            clock.advance(minutes=20)
            assert registry.get(session.id) is session

    def test_purge_expired_count(self, registry, clock):
        registry.open("tenant-1", "survey-1")
        registry.open("tenant-1", "survey-1")
        clock.advance(minutes=31)

        assert registry.purge_expired() == 2
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_discard_if_done(self, registry):
        """Test finished sessions are dropped and unfinished ones kept."""
        session = registry.open("tenant-1", "survey-1")
        await session.collector.load()

        registry.discard_if_done(session)
        assert registry.get(session.id) is session

        for value in ("a", "b", "c"):
            await session.collector.submit_answer(value)
        assert session.collector.step == Step.DONE

        registry.discard_if_done(session)
        assert registry.get(session.id) is None

    def test_close_all(self, registry):
        sessions = [registry.open("tenant-1", "survey-1") for _ in range(3)]

        registry.close_all()

        assert len(registry) == 0
        assert all(session.collector.is_closed for session in sessions)

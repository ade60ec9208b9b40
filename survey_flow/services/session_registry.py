"""In-memory registry of active response sessions.

Each session owns one ResponseCollector. Sessions are never shared across
respondents and are discarded on completion, abandonment or idle expiry;
nothing is persisted beyond the final submission.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from survey_flow.schemas.survey import AntiAbuseFields
from survey_flow.services.response_collector import ResponseCollector, Step
from survey_flow.logging_config import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ResponseSession:
    """A response session and its bookkeeping.

    Attributes:
        id: Opaque session identifier handed to the client
        collector: State machine for this response
        created_at: When the session was opened
        last_seen_at: Last time a respondent action touched the session
    """
    id: str
    collector: ResponseCollector
    created_at: datetime = field(default_factory=_utcnow)
    last_seen_at: datetime = field(default_factory=_utcnow)


class SessionRegistry:
    """Holds response sessions for the HTTP surface.

    Args:
        source: Survey fetch collaborator shared by all sessions
        gateway: Classification and submission collaborator shared by all sessions
        timeout_minutes: Idle minutes after which a session is discarded
        classifier_timeout_seconds: Bound on each classification call
        clock: Time source (overridable in tests)
    """

    def __init__(
        self,
        source: Any,
        gateway: Any,
        timeout_minutes: int,
        classifier_timeout_seconds: float,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.source = source
        self.gateway = gateway
        self.timeout = timedelta(minutes=timeout_minutes)
        self.classifier_timeout_seconds = classifier_timeout_seconds
        self.clock = clock
        self._sessions: Dict[str, ResponseSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, tenant_id: str, survey_id: str, honeypot: str = "") -> ResponseSession:
        """Create a session for a respondent opening a survey.

        The caller is expected to ``await session.collector.load()`` next.

        Args:
            tenant_id: Tenant owning the survey
            survey_id: Survey to answer
            honeypot: Hidden form field value, forwarded untouched

        Returns:
            New ResponseSession
        """
        self.purge_expired()

        session_id = uuid.uuid4().hex
        now = self.clock()
        collector = ResponseCollector(
            tenant_id,
            survey_id,
            source=self.source,
            gateway=self.gateway,
            classifier_timeout_seconds=self.classifier_timeout_seconds,
            anti_abuse=AntiAbuseFields(
                honeypot=honeypot,
                form_timestamp=int(now.timestamp() * 1000),
            ),
            session_id=session_id,
        )
        session = ResponseSession(id=session_id, collector=collector, created_at=now, last_seen_at=now)
        self._sessions[session_id] = session

        logger.info(f"Opened response session {session_id} for {tenant_id}/{survey_id}")
        return session

    def get(self, session_id: str) -> Optional[ResponseSession]:
        """Look up a live session and mark it as recently used."""
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen_at = self.clock()
        return session

    def discard(self, session_id: str) -> bool:
        """Close and forget a session.

        Returns:
            True if the session existed
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.collector.close()
        logger.info(f"Discarded response session {session_id}")
        return True

    def discard_if_done(self, session: ResponseSession) -> None:
        """Forget a session whose response has been submitted."""
        if session.collector.step == Step.DONE:
            self.discard(session.id)

    def purge_expired(self) -> int:
        """Discard sessions idle for longer than the timeout.

        Returns:
            Number of sessions discarded
        """
        cutoff = self.clock() - self.timeout
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_seen_at < cutoff
        ]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle response sessions")
        return len(expired)

    def close_all(self) -> None:
        """Close every session (application shutdown)."""
        for session_id in list(self._sessions):
            self.discard(session_id)

"""Session membership: creation, joining and participant queries."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from candid.domain.errors import InvalidState
from candid.domain.sessions import (
    ParticipantRecord,
    SessionDetails,
    SessionRecord,
    SessionStatus,
    SessionSummary,
)
from candid.services.auth import AccessGate
from candid.services.stats import StatsService

_logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for sessions and their membership table."""

    def create_session(
        self, host_id: UUID, name: str, reveal_time: datetime | None
    ) -> SessionRecord:
        """Create an active session and return it."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def is_participant(self, session_id: UUID, user_id: UUID) -> bool:
        """Return whether the user has a membership record for the session."""

    def add_participant(self, session_id: UUID, user_id: UUID) -> None:
        """Insert a membership record, ignoring existing ones."""

    def list_participants(self, session_id: UUID) -> list[ParticipantRecord]:
        """Return membership records for a session."""

    def list_user_sessions(self, user_id: UUID) -> list[SessionRecord]:
        """Return sessions the user participates in."""

    def count_hosted_sessions(self, user_id: UUID) -> int:
        """Return how many sessions the user hosts."""


@dataclass
class SessionService:
    """Application service for session membership."""

    repository: SessionRepository
    gate: AccessGate
    stats_service: StatsService

    def create_session(
        self,
        host_id: UUID | None,
        name: str,
        reveal_time: datetime | None = None,
    ) -> SessionRecord:
        """Create a session hosted by the caller, who also joins it."""
        host = self.gate.require_user(host_id)
        session = self.repository.create_session(host, name.strip(), reveal_time)
        self.repository.add_participant(session.id, host)
        self.stats_service.record_session_hosted(host, datetime.now(tz=UTC))
        _logger.info("Session created: session_id=%s host_id=%s", session.id, host)
        return session

    def join_session(self, session_id: UUID, user_id: UUID | None) -> SessionRecord:
        """Add the caller to a session; joining twice is a no-op."""
        user = self.gate.require_user(user_id)
        session = self.gate.require_session(session_id)
        if session.status == SessionStatus.ENDED:
            raise InvalidState("Session has ended")
        if not self.repository.is_participant(session_id, user):
            self.repository.add_participant(session_id, user)
        return session

    def list_user_sessions(self, user_id: UUID | None) -> list[SessionSummary]:
        """Return the caller's sessions with participant counts."""
        if user_id is None:
            return []
        return [
            SessionSummary(
                session=session,
                participant_count=len(self.repository.list_participants(session.id)),
                is_host=session.host_id == user_id,
            )
            for session in self.repository.list_user_sessions(user_id)
        ]

    def get_session_details(
        self, session_id: UUID, viewer_id: UUID | None
    ) -> SessionDetails | None:
        """Return session details, or None for outsiders."""
        if viewer_id is None:
            return None
        session = self.repository.get_session(session_id)
        if session is None or not self.repository.is_participant(
            session_id, viewer_id
        ):
            return None
        return SessionDetails(
            session=session,
            participants=self.repository.list_participants(session_id),
            is_host=session.host_id == viewer_id,
        )

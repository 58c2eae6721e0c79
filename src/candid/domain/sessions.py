"""Domain models for capture sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Lifecycle of a capture session."""

    ACTIVE = "active"
    REVEALED = "revealed"
    ENDED = "ended"


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted capture session."""

    id: UUID
    name: str
    host_id: UUID
    status: SessionStatus
    created_at: datetime
    reveal_time: datetime | None = None


@dataclass(frozen=True)
class ParticipantRecord:
    """Membership of a user in a session."""

    session_id: UUID
    user_id: UUID
    joined_at: datetime


@dataclass(frozen=True)
class SessionSummary:
    """Session row as listed for one of its participants."""

    session: SessionRecord
    participant_count: int
    is_host: bool


@dataclass(frozen=True)
class SessionDetails:
    """Session with its participants, as seen by a participant."""

    session: SessionRecord
    participants: list[ParticipantRecord]
    is_host: bool

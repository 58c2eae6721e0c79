"""Domain models for captured photos."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class PhotoRecord:
    """Represents a persisted photo and its ownership state."""

    id: UUID
    session_id: UUID
    original_owner_id: UUID
    owner_id: UUID
    storage_ref: str
    is_revealed: bool
    captured_at: datetime
    trade_count: int = 0


@dataclass(frozen=True)
class VisiblePhoto:
    """A photo as presented to a specific viewer."""

    photo: PhotoRecord
    url: str | None
    can_trade: bool


@dataclass(frozen=True)
class CapturedPhoto:
    """A newly inserted photo and whether it is the capturer's first there."""

    photo: PhotoRecord
    first_in_session: bool

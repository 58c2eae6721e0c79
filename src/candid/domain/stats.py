"""Domain models for user statistics and badges."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class Badge:
    """An earned, non-revocable achievement."""

    id: str
    name: str
    earned_at: datetime
    criteria: str | None = None


@dataclass(frozen=True)
class StatsCounters:
    """Counters rebuilt by the reconciliation pass."""

    total_photos: int
    total_trades: int
    sessions_attended: int
    sessions_hosted: int
    photos_received: int


@dataclass(frozen=True)
class UserStats:
    """Per-user activity counters."""

    user_id: UUID
    total_photos: int
    total_trades: int
    sessions_attended: int
    sessions_hosted: int
    photos_received: int
    last_activity: datetime
    joined_at: datetime
    badges: list[Badge] = field(default_factory=list)

    @property
    def badge_ids(self) -> set[str]:
        """Ids of the badges already earned."""
        return {badge.id for badge in self.badges}


@dataclass(frozen=True)
class LeaderboardEntry:
    """One row of the leaderboard."""

    user_id: UUID
    total_photos: int
    total_trades: int
    sessions_attended: int
    badges: list[Badge]

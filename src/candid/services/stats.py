"""User statistics, badges and the leaderboard."""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from candid.domain.stats import Badge, LeaderboardEntry, StatsCounters, UserStats

if TYPE_CHECKING:
    from candid.domain.trades import TradeSettlement
    from candid.services.photos import PhotoRepository
    from candid.services.sessions import SessionRepository
    from candid.services.trades import TradeRepository

_logger = logging.getLogger(__name__)

SHARP_SHOOTER_PHOTOS = 5
MOST_WANTED_TRADES = 3
COLLECTOR_TRADES = 10


class StatsRepository(Protocol):
    """Persistence interface for per-user statistics."""

    def get_stats(self, user_id: UUID) -> UserStats | None:
        """Return stats with badges for a user, if present."""

    def ensure_stats(self, user_id: UUID, at: datetime) -> UserStats:
        """Return stats for a user, creating a zeroed row if absent."""

    def increment_stats(  # noqa: PLR0913
        self,
        user_id: UUID,
        at: datetime,
        *,
        photos: int = 0,
        trades: int = 0,
        sessions_attended: int = 0,
        sessions_hosted: int = 0,
        photos_received: int = 0,
    ) -> None:
        """Atomically add to counters and touch last activity, creating the row."""

    def replace_counters(self, user_id: UUID, counters: StatsCounters) -> None:
        """Overwrite counters with recomputed values."""

    def list_stats(self) -> list[UserStats]:
        """Return stats for every known user."""

    def add_badges(self, user_id: UUID, badges: list[Badge]) -> None:
        """Store badges, keeping any already earned with the same id."""


@dataclass(frozen=True)
class BadgeDefinition:
    """Static description of an awardable badge."""

    id: str
    name: str
    criteria: str

    def award(self, at: datetime) -> Badge:
        """Create the earned badge."""
        return Badge(id=self.id, name=self.name, earned_at=at, criteria=self.criteria)


SHARP_SHOOTER = BadgeDefinition(
    id="sharp_shooter",
    name="Sharp Shooter",
    criteria=f"Captured {SHARP_SHOOTER_PHOTOS} or more photos in a single session",
)
MOST_WANTED = BadgeDefinition(
    id="most_wanted",
    name="Most Wanted",
    criteria=f"Held a photo traded {MOST_WANTED_TRADES} or more times",
)
COLLECTOR = BadgeDefinition(
    id="collector",
    name="Collector",
    criteria=f"Completed {COLLECTOR_TRADES} or more trades",
)


@dataclass
class StatsService:
    """Incremental counters, reconciliation and badge evaluation."""

    repository: StatsRepository
    photo_repository: "PhotoRepository"
    trade_repository: "TradeRepository"
    session_repository: "SessionRepository"

    def record_capture(
        self, user_id: UUID, *, first_in_session: bool, at: datetime
    ) -> None:
        """Count a captured photo."""
        self.repository.increment_stats(
            user_id,
            at,
            photos=1,
            sessions_attended=1 if first_in_session else 0,
        )

    def record_trade(self, settlement: "TradeSettlement", user_id: UUID) -> None:
        """Count a settled trade for one of its parties."""
        self.repository.increment_stats(
            user_id,
            settlement.completed_at,
            trades=1,
            photos_received=settlement.received_by(user_id),
        )

    def record_session_hosted(self, user_id: UUID, at: datetime) -> None:
        """Count a session created by the user."""
        self.repository.increment_stats(user_id, at, sessions_hosted=1)

    def get_user_stats(self, user_id: UUID | None) -> UserStats | None:
        """Return the caller's stats, creating them on first query."""
        if user_id is None:
            return None
        return self.repository.ensure_stats(user_id, datetime.now(tz=UTC))

    def get_leaderboard(self, viewer_id: UUID | None) -> list[LeaderboardEntry]:
        """Return all users ordered by photos, then trades."""
        if viewer_id is None:
            return []
        ranked = sorted(
            self.repository.list_stats(),
            key=lambda stats: (-stats.total_photos, -stats.total_trades),
        )
        return [
            LeaderboardEntry(
                user_id=stats.user_id,
                total_photos=stats.total_photos,
                total_trades=stats.total_trades,
                sessions_attended=stats.sessions_attended,
                badges=stats.badges,
            )
            for stats in ranked
        ]

    def refresh_all_user_stats(self) -> int:
        """Recompute every user's counters from photos, trades and transfers.

        Badges and ownership are left untouched. Returns the number of users
        refreshed.
        """
        refreshed = 0
        for stats in self.repository.list_stats():
            self.repository.replace_counters(
                stats.user_id, self.compute_counters(stats.user_id)
            )
            refreshed += 1
        _logger.info("User stats refreshed: users=%s", refreshed)
        return refreshed

    def compute_counters(self, user_id: UUID) -> StatsCounters:
        """Derive a user's counters from the source-of-truth tables."""
        captured = self.photo_repository.list_captured_photos(user_id)
        return StatsCounters(
            total_photos=len(captured),
            total_trades=len(self.trade_repository.list_accepted_trades(user_id)),
            sessions_attended=len({photo.session_id for photo in captured}),
            sessions_hosted=self.session_repository.count_hosted_sessions(user_id),
            photos_received=len(
                self.trade_repository.list_received_transfers(user_id)
            ),
        )

    def calculate_and_assign_badges(self, user_id: UUID) -> list[Badge]:
        """Award badges whose criteria now hold and return the full badge set.

        Existing badges are never removed or duplicated.
        """
        now = datetime.now(tz=UTC)
        stats = self.repository.ensure_stats(user_id, now)
        earned = stats.badge_ids
        new_badges = [
            definition.award(now)
            for definition in self._qualifying(user_id, stats)
            if definition.id not in earned
        ]
        if not new_badges:
            return stats.badges
        self.repository.add_badges(user_id, new_badges)
        _logger.info(
            "Badges awarded: user_id=%s badges=%s",
            user_id,
            [badge.id for badge in new_badges],
        )
        return [*stats.badges, *new_badges]

    def _qualifying(self, user_id: UUID, stats: UserStats) -> list[BadgeDefinition]:
        qualifying = []
        captured = self.photo_repository.list_captured_photos(user_id)
        per_session = Counter(photo.session_id for photo in captured)
        if per_session and max(per_session.values()) >= SHARP_SHOOTER_PHOTOS:
            qualifying.append(SHARP_SHOOTER)

        held = {photo.id: photo for photo in captured}
        held.update(
            (photo.id, photo)
            for photo in self.photo_repository.list_owned_photos(user_id)
        )
        received_ids = [
            transfer.photo_id
            for transfer in self.trade_repository.list_received_transfers(user_id)
            if transfer.photo_id not in held
        ]
        held.update(self.photo_repository.get_photos(received_ids))
        if any(photo.trade_count >= MOST_WANTED_TRADES for photo in held.values()):
            qualifying.append(MOST_WANTED)

        if stats.total_trades >= COLLECTOR_TRADES:
            qualifying.append(COLLECTOR)
        return qualifying

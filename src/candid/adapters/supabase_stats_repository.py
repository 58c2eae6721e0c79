"""Supabase repository for user statistics and badges."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from candid.adapters.supabase_rows import parse_timestamp
from candid.domain.stats import Badge, StatsCounters, UserStats
from candid.services.stats import StatsRepository

_STATS_COLUMNS = (
    "user_id, total_photos, total_trades, sessions_attended, sessions_hosted, "
    "photos_received, last_activity, joined_at"
)
_BADGE_COLUMNS = "user_id, badge_id, name, earned_at, criteria"


@dataclass
class SupabaseStatsRepository(StatsRepository):
    """Supabase implementation for stats queries and updates."""

    client: Client

    def get_stats(self, user_id: UUID) -> UserStats | None:
        """Return stats and badges for a user, if present."""
        response = (
            self.client.table("user_stats")
            .select(_STATS_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_stats(response.data[0], self._badges_for([user_id]))

    def ensure_stats(self, user_id: UUID, at: datetime) -> UserStats:
        """Return stats, inserting a zeroed row on first use."""
        self.client.table("user_stats").upsert(
            {
                "user_id": str(user_id),
                "last_activity": at.isoformat(),
                "joined_at": at.isoformat(),
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()
        stats = self.get_stats(user_id)
        if stats is None:
            raise RuntimeError("Failed to create user stats")
        return stats

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
        """Add to counters in a single statement via increment_user_stats."""
        self.client.rpc(
            "increment_user_stats",
            {
                "p_user_id": str(user_id),
                "p_at": at.isoformat(),
                "p_photos": photos,
                "p_trades": trades,
                "p_sessions_attended": sessions_attended,
                "p_sessions_hosted": sessions_hosted,
                "p_photos_received": photos_received,
            },
        ).execute()

    def replace_counters(self, user_id: UUID, counters: StatsCounters) -> None:
        """Overwrite the counters of a stats row."""
        self.client.table("user_stats").update(
            {
                "total_photos": counters.total_photos,
                "total_trades": counters.total_trades,
                "sessions_attended": counters.sessions_attended,
                "sessions_hosted": counters.sessions_hosted,
                "photos_received": counters.photos_received,
            }
        ).eq("user_id", str(user_id)).execute()

    def list_stats(self) -> list[UserStats]:
        """Return stats for every user."""
        response = self.client.table("user_stats").select(_STATS_COLUMNS).execute()
        rows = response.data or []
        badges = self._badges_for([UUID(str(row["user_id"])) for row in rows])
        return [_parse_stats(row, badges) for row in rows]

    def add_badges(self, user_id: UUID, badges: list[Badge]) -> None:
        """Insert badges; rows that already exist are left as earned."""
        if not badges:
            return
        self.client.table("user_badges").upsert(
            [
                {
                    "user_id": str(user_id),
                    "badge_id": badge.id,
                    "name": badge.name,
                    "earned_at": badge.earned_at.isoformat(),
                    "criteria": badge.criteria,
                }
                for badge in badges
            ],
            on_conflict="user_id,badge_id",
            ignore_duplicates=True,
        ).execute()

    def _badges_for(self, user_ids: list[UUID]) -> dict[UUID, list[Badge]]:
        if not user_ids:
            return {}
        response = (
            self.client.table("user_badges")
            .select(_BADGE_COLUMNS)
            .in_("user_id", [str(user_id) for user_id in user_ids])
            .order("earned_at", desc=False)
            .execute()
        )
        badges: dict[UUID, list[Badge]] = {}
        for row in response.data or []:
            badges.setdefault(UUID(str(row["user_id"])), []).append(
                Badge(
                    id=str(row["badge_id"]),
                    name=str(row["name"]),
                    earned_at=parse_timestamp(row["earned_at"]),
                    criteria=row.get("criteria"),
                )
            )
        return badges


def _parse_stats(row: dict[str, object], badges: dict[UUID, list[Badge]]) -> UserStats:
    user_id = UUID(str(row["user_id"]))
    return UserStats(
        user_id=user_id,
        total_photos=int(row.get("total_photos") or 0),
        total_trades=int(row.get("total_trades") or 0),
        sessions_attended=int(row.get("sessions_attended") or 0),
        sessions_hosted=int(row.get("sessions_hosted") or 0),
        photos_received=int(row.get("photos_received") or 0),
        last_activity=parse_timestamp(row["last_activity"]),
        joined_at=parse_timestamp(row["joined_at"]),
        badges=badges.get(user_id, []),
    )

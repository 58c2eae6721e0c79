"""Supabase-backed session and membership repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from candid.adapters.supabase_rows import parse_optional_timestamp, parse_timestamp
from candid.domain.sessions import ParticipantRecord, SessionRecord, SessionStatus
from candid.services.sessions import SessionRepository

_SESSION_COLUMNS = "id, name, host_id, status, reveal_time, created_at"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for sessions and participants."""

    client: Client

    def create_session(
        self, host_id: UUID, name: str, reveal_time: datetime | None
    ) -> SessionRecord:
        """Create an active session row and return it."""
        response = (
            self.client.table("sessions")
            .insert(
                {
                    "name": name,
                    "host_id": str(host_id),
                    "status": SessionStatus.ACTIVE.value,
                    "reveal_time": reveal_time.isoformat() if reveal_time else None,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _parse_session(response.data[0])

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("sessions")
            .select(_SESSION_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def is_participant(self, session_id: UUID, user_id: UUID) -> bool:
        """Return whether a membership row exists."""
        response = (
            self.client.table("session_participants")
            .select("user_id")
            .eq("session_id", str(session_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return bool(response.data)

    def add_participant(self, session_id: UUID, user_id: UUID) -> None:
        """Insert a membership row, ignoring duplicates."""
        self.client.table("session_participants").upsert(
            {"session_id": str(session_id), "user_id": str(user_id)},
            on_conflict="session_id,user_id",
            ignore_duplicates=True,
        ).execute()

    def list_participants(self, session_id: UUID) -> list[ParticipantRecord]:
        """Return membership rows for a session."""
        response = (
            self.client.table("session_participants")
            .select("session_id, user_id, joined_at")
            .eq("session_id", str(session_id))
            .order("joined_at", desc=False)
            .execute()
        )
        return [
            ParticipantRecord(
                session_id=UUID(row["session_id"]),
                user_id=UUID(row["user_id"]),
                joined_at=parse_timestamp(row["joined_at"]),
            )
            for row in response.data or []
        ]

    def list_user_sessions(self, user_id: UUID) -> list[SessionRecord]:
        """Return sessions the user has joined, newest first."""
        response = (
            self.client.table("session_participants")
            .select(f"sessions({_SESSION_COLUMNS})")
            .eq("user_id", str(user_id))
            .order("joined_at", desc=True)
            .execute()
        )
        return [
            _parse_session(row["sessions"])
            for row in response.data or []
            if row.get("sessions")
        ]

    def count_hosted_sessions(self, user_id: UUID) -> int:
        """Return how many sessions the user hosts."""
        response = (
            self.client.table("sessions")
            .select("id")
            .eq("host_id", str(user_id))
            .execute()
        )
        return len(response.data or [])


def _parse_session(row: dict[str, object]) -> SessionRecord:
    return SessionRecord(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        host_id=UUID(str(row["host_id"])),
        status=SessionStatus(row["status"]),
        created_at=parse_timestamp(row["created_at"]),
        reveal_time=parse_optional_timestamp(row.get("reveal_time")),
    )

"""Supabase-backed photo ownership repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from candid.adapters.supabase_rows import parse_timestamp
from candid.domain.photos import CapturedPhoto, PhotoRecord
from candid.services.photos import PhotoRepository

_PHOTO_COLUMNS = (
    "id, session_id, original_owner_id, owner_id, storage_ref, is_revealed, "
    "captured_at, trade_count"
)


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation for photo persistence."""

    client: Client

    def create_photo(
        self,
        session_id: UUID,
        owner_id: UUID,
        storage_ref: str,
        captured_at: datetime,
    ) -> CapturedPhoto | None:
        """Insert a photo through capture_photo, which locks the session row."""
        response = self.client.rpc(
            "capture_photo",
            {
                "p_session_id": str(session_id),
                "p_owner_id": str(owner_id),
                "p_storage_ref": storage_ref,
                "p_captured_at": captured_at.isoformat(),
            },
        ).execute()
        payload = response.data
        if not isinstance(payload, dict) or not payload.get("photo"):
            return None
        return CapturedPhoto(
            photo=parse_photo(payload["photo"]),
            first_in_session=bool(payload.get("first_in_session")),
        )

    def get_photo(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("id", str(photo_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_photo(response.data[0])

    def get_photos(self, photo_ids: list[UUID]) -> dict[UUID, PhotoRecord]:
        """Return the photos that exist among the ids."""
        if not photo_ids:
            return {}
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .in_("id", [str(photo_id) for photo_id in dict.fromkeys(photo_ids)])
            .execute()
        )
        photos = [parse_photo(row) for row in response.data or []]
        return {photo.id: photo for photo in photos}

    def list_session_photos(self, session_id: UUID) -> list[PhotoRecord]:
        """Return photos of a session in capture order."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("session_id", str(session_id))
            .order("captured_at", desc=False)
            .execute()
        )
        return [parse_photo(row) for row in response.data or []]

    def list_owned_photos(self, owner_id: UUID) -> list[PhotoRecord]:
        """Return photos currently owned by the user."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("owner_id", str(owner_id))
            .order("captured_at", desc=True)
            .execute()
        )
        return [parse_photo(row) for row in response.data or []]

    def list_captured_photos(self, user_id: UUID) -> list[PhotoRecord]:
        """Return photos originally captured by the user."""
        response = (
            self.client.table("photos")
            .select(_PHOTO_COLUMNS)
            .eq("original_owner_id", str(user_id))
            .order("captured_at", desc=False)
            .execute()
        )
        return [parse_photo(row) for row in response.data or []]

    def reveal_session(self, session_id: UUID, revealed_at: datetime) -> bool:
        """Reveal the session and its photos in one transaction."""
        response = self.client.rpc(
            "reveal_session",
            {"p_session_id": str(session_id), "p_revealed_at": revealed_at.isoformat()},
        ).execute()
        return response.data is True


def parse_photo(row: dict[str, object]) -> PhotoRecord:
    """Build a photo record from a photos row."""
    return PhotoRecord(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        original_owner_id=UUID(str(row["original_owner_id"])),
        owner_id=UUID(str(row["owner_id"])),
        storage_ref=str(row["storage_ref"]),
        is_revealed=bool(row["is_revealed"]),
        captured_at=parse_timestamp(row["captured_at"]),
        trade_count=int(row.get("trade_count") or 0),
    )

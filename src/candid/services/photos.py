"""Photo capture, reveal and visibility."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from candid.domain.errors import InvalidState, SessionNotActive
from candid.domain.photos import CapturedPhoto, PhotoRecord, VisiblePhoto
from candid.domain.sessions import SessionStatus
from candid.services.auth import AccessGate
from candid.services.stats import StatsService

_logger = logging.getLogger(__name__)


class PhotoRepository(Protocol):
    """Persistence interface for photos and their ownership state."""

    def create_photo(
        self,
        session_id: UUID,
        owner_id: UUID,
        storage_ref: str,
        captured_at: datetime,
    ) -> CapturedPhoto | None:
        """Insert an unrevealed photo if the session is still active.

        Also reports whether this is the owner's first photo in the session,
        decided in the same unit as the insert. Returns None when the session
        is no longer active at write time.
        """

    def get_photo(self, photo_id: UUID) -> PhotoRecord | None:
        """Return a photo by id, if present."""

    def get_photos(self, photo_ids: list[UUID]) -> dict[UUID, PhotoRecord]:
        """Return the photos that exist among the ids, keyed by id."""

    def list_session_photos(self, session_id: UUID) -> list[PhotoRecord]:
        """Return every photo captured in a session, oldest first."""

    def list_owned_photos(self, owner_id: UUID) -> list[PhotoRecord]:
        """Return photos currently owned by the user."""

    def list_captured_photos(self, user_id: UUID) -> list[PhotoRecord]:
        """Return photos originally captured by the user."""

    def reveal_session(self, session_id: UUID, revealed_at: datetime) -> bool:
        """Flip an active session and all its photos to revealed as one unit.

        Returns False when the session was not active.
        """


class BlobStore(Protocol):
    """Binary storage for image bytes."""

    def put_blob(self, data: bytes, content_type: str) -> str:
        """Store bytes and return an opaque reference."""

    def get_url(self, ref: str) -> str | None:
        """Return a URL for the reference, or None if not yet resolvable."""

    def delete_blob(self, ref: str) -> None:
        """Remove a stored object."""


@dataclass
class PhotoService:
    """Application service for the photo ownership store."""

    repository: PhotoRepository
    blob_store: BlobStore
    gate: AccessGate
    stats_service: StatsService

    def capture_photo(
        self, session_id: UUID, capturer_id: UUID | None, storage_ref: str
    ) -> UUID:
        """Record a captured photo owned by its capturer."""
        capturer = self._require_capturer(session_id, capturer_id)
        return self._insert(session_id, capturer, storage_ref)

    def upload_photo(
        self,
        session_id: UUID,
        capturer_id: UUID | None,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> UUID:
        """Store image bytes and capture them as a photo.

        If the session stops being active between the upload and the insert,
        the stored object is removed before the failure propagates.
        """
        capturer = self._require_capturer(session_id, capturer_id)
        storage_ref = self.blob_store.put_blob(data, content_type)
        try:
            return self._insert(session_id, capturer, storage_ref)
        except SessionNotActive:
            _logger.warning(
                "Capture rejected after upload, removing blob: ref=%s session_id=%s",
                storage_ref,
                session_id,
            )
            self.blob_store.delete_blob(storage_ref)
            raise

    def reveal_session(self, session_id: UUID, requester_id: UUID | None) -> int:
        """Reveal every photo of a session; only the host may do this.

        Returns the number of photos in the session.
        """
        requester = self.gate.require_user(requester_id)
        session = self.gate.require_session(session_id)
        self.gate.require_host(session, requester)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidState("Session is not active")
        if not self.repository.reveal_session(session_id, datetime.now(tz=UTC)):
            raise InvalidState("Session is not active")
        count = len(self.repository.list_session_photos(session_id))
        _logger.info("Session revealed: session_id=%s photos=%s", session_id, count)
        return count

    def list_visible_photos(
        self, session_id: UUID, viewer_id: UUID | None
    ) -> list[VisiblePhoto]:
        """Return revealed photos plus the viewer's own unrevealed captures."""
        if viewer_id is None:
            return []
        session = self.gate.session_repository.get_session(session_id)
        if session is None or not self.gate.session_repository.is_participant(
            session_id, viewer_id
        ):
            return []
        return [
            self.present(photo, viewer_id)
            for photo in self.repository.list_session_photos(session_id)
            if photo.is_revealed or photo.original_owner_id == viewer_id
        ]

    def list_owned_photos(self, viewer_id: UUID | None) -> list[VisiblePhoto]:
        """Return the viewer's personal gallery."""
        if viewer_id is None:
            return []
        return [
            self.present(photo, viewer_id)
            for photo in self.repository.list_owned_photos(viewer_id)
        ]

    def present(self, photo: PhotoRecord, viewer_id: UUID) -> VisiblePhoto:
        """Resolve a photo's URL and tradeability for a viewer."""
        return VisiblePhoto(
            photo=photo,
            url=self.blob_store.get_url(photo.storage_ref),
            can_trade=photo.is_revealed and photo.owner_id != viewer_id,
        )

    def _require_capturer(self, session_id: UUID, capturer_id: UUID | None) -> UUID:
        capturer = self.gate.require_user(capturer_id)
        session = self.gate.require_session(session_id)
        self.gate.require_participant(session_id, capturer)
        if session.status != SessionStatus.ACTIVE:
            raise SessionNotActive("Session is not active")
        return capturer

    def _insert(self, session_id: UUID, capturer: UUID, storage_ref: str) -> UUID:
        captured_at = datetime.now(tz=UTC)
        captured = self.repository.create_photo(
            session_id=session_id,
            owner_id=capturer,
            storage_ref=storage_ref,
            captured_at=captured_at,
        )
        if captured is None:
            raise SessionNotActive("Session is not active")

        self.stats_service.record_capture(
            capturer, first_in_session=captured.first_in_session, at=captured_at
        )
        _logger.info(
            "Photo captured: photo_id=%s session_id=%s user_id=%s",
            captured.photo.id,
            session_id,
            capturer,
        )
        return captured.photo.id

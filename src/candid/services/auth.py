"""Identity resolution and the participant/host gate."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from candid.domain.errors import (
    NotAParticipant,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
)
from candid.domain.sessions import SessionRecord

if TYPE_CHECKING:
    from candid.services.sessions import SessionRepository


class IdentityResolver(Protocol):
    """Resolves the caller's user id from an access token."""

    def current_user_id(self, token: str | None) -> UUID | None:
        """Return the user id for the token, or None when unauthenticated."""


@dataclass
class AccessGate:
    """Preconditions shared by every mutating operation."""

    session_repository: "SessionRepository"

    def require_user(self, user_id: UUID | None) -> UUID:
        """Return the user id or fail when no identity is present."""
        if user_id is None:
            raise NotAuthenticated("Not authenticated")
        return user_id

    def require_session(self, session_id: UUID) -> SessionRecord:
        """Return the session or fail when the id does not resolve."""
        session = self.session_repository.get_session(session_id)
        if session is None:
            raise NotFound("Session not found")
        return session

    def require_participant(self, session_id: UUID, user_id: UUID) -> None:
        """Fail unless the user belongs to the session."""
        if not self.session_repository.is_participant(session_id, user_id):
            raise NotAParticipant("Not a participant")

    def require_host(self, session: SessionRecord, user_id: UUID) -> None:
        """Fail unless the user hosts the session."""
        if session.host_id != user_id:
            raise NotAuthorized("Only session hosts can reveal photos")

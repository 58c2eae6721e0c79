"""Supabase Auth identity resolver."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from candid.services.auth import IdentityResolver

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityResolver(IdentityResolver):
    """Resolves user ids from Supabase access tokens."""

    client: Client

    def current_user_id(self, token: str | None) -> UUID | None:
        """Return the token's user id, or None for missing or invalid tokens."""
        if not token:
            return None
        try:
            response = self.client.auth.get_user(token)
        except Exception:
            _logger.info("Rejected access token", exc_info=True)
            return None
        if response is None or response.user is None:
            return None
        return UUID(response.user.id)

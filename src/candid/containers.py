"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from candid.adapters.supabase_blob_store import SupabaseBlobStore
from candid.adapters.supabase_identity import SupabaseIdentityResolver
from candid.adapters.supabase_photo_repository import SupabasePhotoRepository
from candid.adapters.supabase_session_repository import SupabaseSessionRepository
from candid.adapters.supabase_stats_repository import SupabaseStatsRepository
from candid.adapters.supabase_trade_repository import SupabaseTradeRepository
from candid.config import Settings
from candid.services.auth import AccessGate, IdentityResolver
from candid.services.photos import PhotoService
from candid.services.sessions import SessionService
from candid.services.stats import StatsService
from candid.services.trades import TradeService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_resolver: IdentityResolver
    session_service: SessionService
    photo_service: PhotoService
    trade_service: TradeService
    stats_service: StatsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    photo_repository = SupabasePhotoRepository(supabase_client)
    trade_repository = SupabaseTradeRepository(supabase_client)
    stats_repository = SupabaseStatsRepository(supabase_client)
    blob_store = SupabaseBlobStore(
        client=supabase_client,
        bucket=resolved_settings.storage_bucket,
        signed_url_ttl_seconds=resolved_settings.signed_url_ttl_seconds,
    )
    gate = AccessGate(session_repository)
    stats_service = StatsService(
        repository=stats_repository,
        photo_repository=photo_repository,
        trade_repository=trade_repository,
        session_repository=session_repository,
    )
    session_service = SessionService(
        repository=session_repository,
        gate=gate,
        stats_service=stats_service,
    )
    photo_service = PhotoService(
        repository=photo_repository,
        blob_store=blob_store,
        gate=gate,
        stats_service=stats_service,
    )
    trade_service = TradeService(
        repository=trade_repository,
        photo_service=photo_service,
        gate=gate,
        stats_service=stats_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        identity_resolver=SupabaseIdentityResolver(supabase_client),
        session_service=session_service,
        photo_service=photo_service,
        trade_service=trade_service,
        stats_service=stats_service,
        close_resources=close_resources,
    )

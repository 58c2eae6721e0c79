"""Tests for container wiring."""

import asyncio

from candid.adapters.supabase_photo_repository import SupabasePhotoRepository
from candid.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.session_service is not None
    assert isinstance(container.photo_service.repository, SupabasePhotoRepository)
    assert container.trade_service.photo_service is container.photo_service
    asyncio.run(container.close_resources())

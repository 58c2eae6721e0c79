"""Shared test fixtures."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from candid.config import Settings
from candid.containers import AppContainer
from candid.domain.photos import CapturedPhoto, PhotoRecord
from candid.domain.sessions import ParticipantRecord, SessionRecord, SessionStatus
from candid.domain.stats import Badge, StatsCounters, UserStats
from candid.domain.trades import (
    OfferSet,
    PhotoTransfer,
    SettlementOutcome,
    SettlementResult,
    TradeRecord,
    TradeSettlement,
    TradeStatus,
)
from candid.services.auth import AccessGate, IdentityResolver
from candid.services.photos import BlobStore, PhotoRepository, PhotoService
from candid.services.sessions import SessionRepository, SessionService
from candid.services.stats import StatsRepository, StatsService
from candid.services.trades import TradeRepository, TradeService


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory sessions and membership for tests.

    Owns the lock every other in-memory repository uses for atomic units.
    """

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    participants: dict[UUID, list[ParticipantRecord]] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def create_session(
        self, host_id: UUID, name: str, reveal_time: datetime | None
    ) -> SessionRecord:
        session = SessionRecord(
            id=uuid4(),
            name=name,
            host_id=host_id,
            status=SessionStatus.ACTIVE,
            created_at=datetime.now(tz=UTC),
            reveal_time=reveal_time,
        )
        with self.lock:
            self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def is_participant(self, session_id: UUID, user_id: UUID) -> bool:
        return any(
            member.user_id == user_id
            for member in self.participants.get(session_id, [])
        )

    def add_participant(self, session_id: UUID, user_id: UUID) -> None:
        with self.lock:
            if self.is_participant(session_id, user_id):
                return
            self.participants.setdefault(session_id, []).append(
                ParticipantRecord(
                    session_id=session_id,
                    user_id=user_id,
                    joined_at=datetime.now(tz=UTC),
                )
            )

    def list_participants(self, session_id: UUID) -> list[ParticipantRecord]:
        return list(self.participants.get(session_id, []))

    def list_user_sessions(self, user_id: UUID) -> list[SessionRecord]:
        return [
            self.sessions[session_id]
            for session_id in self.participants
            if self.is_participant(session_id, user_id)
        ]

    def count_hosted_sessions(self, user_id: UUID) -> int:
        return sum(1 for s in self.sessions.values() if s.host_id == user_id)

    def set_status(self, session_id: UUID, status: SessionStatus) -> None:
        self.sessions[session_id] = replace(self.sessions[session_id], status=status)


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """In-memory photo ownership store for tests."""

    session_repository: InMemorySessionRepository
    photos: dict[UUID, PhotoRecord] = field(default_factory=dict)

    @property
    def lock(self) -> threading.RLock:
        return self.session_repository.lock

    def create_photo(
        self,
        session_id: UUID,
        owner_id: UUID,
        storage_ref: str,
        captured_at: datetime,
    ) -> CapturedPhoto | None:
        with self.lock:
            session = self.session_repository.get_session(session_id)
            if session is None or session.status != SessionStatus.ACTIVE:
                return None
            first_in_session = not any(
                p.session_id == session_id and p.original_owner_id == owner_id
                for p in self.photos.values()
            )
            photo = PhotoRecord(
                id=uuid4(),
                session_id=session_id,
                original_owner_id=owner_id,
                owner_id=owner_id,
                storage_ref=storage_ref,
                is_revealed=False,
                captured_at=captured_at,
            )
            self.photos[photo.id] = photo
            return CapturedPhoto(photo=photo, first_in_session=first_in_session)

    def get_photo(self, photo_id: UUID) -> PhotoRecord | None:
        return self.photos.get(photo_id)

    def get_photos(self, photo_ids: list[UUID]) -> dict[UUID, PhotoRecord]:
        return {
            photo_id: self.photos[photo_id]
            for photo_id in photo_ids
            if photo_id in self.photos
        }

    def list_session_photos(self, session_id: UUID) -> list[PhotoRecord]:
        with self.lock:
            return [p for p in self.photos.values() if p.session_id == session_id]

    def list_owned_photos(self, owner_id: UUID) -> list[PhotoRecord]:
        return [p for p in self.photos.values() if p.owner_id == owner_id]

    def list_captured_photos(self, user_id: UUID) -> list[PhotoRecord]:
        return [p for p in self.photos.values() if p.original_owner_id == user_id]

    def reveal_session(self, session_id: UUID, revealed_at: datetime) -> bool:
        with self.lock:
            session = self.session_repository.get_session(session_id)
            if session is None or session.status != SessionStatus.ACTIVE:
                return False
            self.session_repository.sessions[session_id] = replace(
                session,
                status=SessionStatus.REVEALED,
                reveal_time=session.reveal_time or revealed_at,
            )
            for photo in list(self.photos.values()):
                if photo.session_id == session_id:
                    self.photos[photo.id] = replace(photo, is_revealed=True)
            return True


@dataclass
class InMemoryTradeRepository(TradeRepository):
    """In-memory trades and transfers for tests."""

    photo_repository: InMemoryPhotoRepository
    trades: dict[UUID, TradeRecord] = field(default_factory=dict)
    transfers: list[PhotoTransfer] = field(default_factory=list)

    @property
    def lock(self) -> threading.RLock:
        return self.photo_repository.lock

    def create_trade(  # noqa: PLR0913
        self,
        session_id: UUID,
        from_user_id: UUID,
        to_user_id: UUID,
        offered: OfferSet,
        requested: OfferSet,
        created_at: datetime,
    ) -> TradeRecord:
        trade = TradeRecord(
            id=uuid4(),
            session_id=session_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            offered=offered,
            requested=requested,
            status=TradeStatus.PENDING,
            created_at=created_at,
        )
        with self.lock:
            self.trades[trade.id] = trade
        return trade

    def get_trade(self, trade_id: UUID) -> TradeRecord | None:
        return self.trades.get(trade_id)

    def list_session_trades(
        self, session_id: UUID, user_id: UUID
    ) -> list[TradeRecord]:
        return [
            trade
            for trade in self.trades.values()
            if trade.session_id == session_id
            and user_id in {trade.from_user_id, trade.to_user_id}
        ]

    def list_accepted_trades(self, user_id: UUID) -> list[TradeRecord]:
        return [
            trade
            for trade in self.trades.values()
            if trade.status == TradeStatus.ACCEPTED
            and user_id in {trade.from_user_id, trade.to_user_id}
        ]

    def reject_trade(self, trade_id: UUID) -> bool:
        with self.lock:
            trade = self.trades.get(trade_id)
            if trade is None or trade.status != TradeStatus.PENDING:
                return False
            self.trades[trade_id] = replace(trade, status=TradeStatus.REJECTED)
            return True

    def apply_settlement(self, settlement: TradeSettlement) -> SettlementResult:
        with self.lock:
            trade = self.trades.get(settlement.trade_id)
            if trade is None or trade.status != TradeStatus.PENDING:
                return SettlementResult(outcome=SettlementOutcome.NOT_PENDING)
            photos = self.photo_repository.photos
            for transfer in settlement.transfers:
                photo = photos.get(transfer.photo_id)
                if photo is None or photo.owner_id != transfer.from_user_id:
                    return SettlementResult(
                        outcome=SettlementOutcome.OWNERSHIP_CHANGED
                    )

            moved = set()
            for transfer in settlement.transfers:
                photo = photos[transfer.photo_id]
                photos[photo.id] = replace(
                    photo,
                    owner_id=transfer.to_user_id,
                    trade_count=photo.trade_count + 1,
                )
                self.transfers.append(transfer)
                moved.add(transfer.photo_id)
            self.trades[trade.id] = replace(
                trade,
                status=TradeStatus.ACCEPTED,
                completed_at=settlement.completed_at,
            )

            invalidated = []
            for other in list(self.trades.values()):
                if other.status != TradeStatus.PENDING:
                    continue
                if any(other.references(photo_id) for photo_id in moved):
                    self.trades[other.id] = replace(
                        other, status=TradeStatus.REJECTED
                    )
                    invalidated.append(other.id)
            return SettlementResult(
                outcome=SettlementOutcome.APPLIED,
                invalidated_trade_ids=tuple(invalidated),
            )

    def list_transfers(self, photo_id: UUID) -> list[PhotoTransfer]:
        return [t for t in self.transfers if t.photo_id == photo_id]

    def list_received_transfers(self, user_id: UUID) -> list[PhotoTransfer]:
        return [t for t in self.transfers if t.to_user_id == user_id]


@dataclass
class InMemoryStatsRepository(StatsRepository):
    """In-memory stats repository for tests."""

    stats: dict[UUID, UserStats] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def get_stats(self, user_id: UUID) -> UserStats | None:
        return self.stats.get(user_id)

    def ensure_stats(self, user_id: UUID, at: datetime) -> UserStats:
        with self.lock:
            if user_id not in self.stats:
                self.stats[user_id] = UserStats(
                    user_id=user_id,
                    total_photos=0,
                    total_trades=0,
                    sessions_attended=0,
                    sessions_hosted=0,
                    photos_received=0,
                    last_activity=at,
                    joined_at=at,
                )
            return self.stats[user_id]

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
        with self.lock:
            current = self.ensure_stats(user_id, at)
            self.stats[user_id] = replace(
                current,
                total_photos=current.total_photos + photos,
                total_trades=current.total_trades + trades,
                sessions_attended=current.sessions_attended + sessions_attended,
                sessions_hosted=current.sessions_hosted + sessions_hosted,
                photos_received=current.photos_received + photos_received,
                last_activity=max(current.last_activity, at),
            )

    def replace_counters(self, user_id: UUID, counters: StatsCounters) -> None:
        with self.lock:
            self.stats[user_id] = replace(
                self.stats[user_id],
                total_photos=counters.total_photos,
                total_trades=counters.total_trades,
                sessions_attended=counters.sessions_attended,
                sessions_hosted=counters.sessions_hosted,
                photos_received=counters.photos_received,
            )

    def list_stats(self) -> list[UserStats]:
        return list(self.stats.values())

    def add_badges(self, user_id: UUID, badges: list[Badge]) -> None:
        with self.lock:
            current = self.stats[user_id]
            earned = current.badge_ids
            added = [badge for badge in badges if badge.id not in earned]
            self.stats[user_id] = replace(current, badges=[*current.badges, *added])


@dataclass
class FakeBlobStore(BlobStore):
    """Blob store keeping bytes in memory."""

    blobs: dict[str, bytes] = field(default_factory=dict)
    unresolved: set[str] = field(default_factory=set)
    deleted: list[str] = field(default_factory=list)
    after_put: Callable[[], object] | None = None

    def put_blob(self, data: bytes, content_type: str) -> str:
        ref = f"{uuid4()}.jpg"
        self.blobs[ref] = data
        if self.after_put is not None:
            self.after_put()
        return ref

    def delete_blob(self, ref: str) -> None:
        self.blobs.pop(ref, None)
        self.deleted.append(ref)

    def get_url(self, ref: str) -> str | None:
        if ref in self.unresolved:
            return None
        return f"https://blobs.example/{ref}"


@dataclass
class FakeIdentityResolver(IdentityResolver):
    """Treats the bearer token as the user id."""

    def current_user_id(self, token: str | None) -> UUID | None:
        if not token:
            return None
        try:
            return UUID(token)
        except ValueError:
            return None


@dataclass
class Services:
    """Services wired over in-memory repositories."""

    session_repository: InMemorySessionRepository
    photo_repository: InMemoryPhotoRepository
    trade_repository: InMemoryTradeRepository
    stats_repository: InMemoryStatsRepository
    blob_store: FakeBlobStore
    session_service: SessionService
    photo_service: PhotoService
    trade_service: TradeService
    stats_service: StatsService

    def session_with(self, host: UUID, *members: UUID) -> UUID:
        """Create a session hosted by host with the given members joined."""
        session = self.session_service.create_session(host, "Party")
        for member in members:
            self.session_service.join_session(session.id, member)
        return session.id

    def capture(self, session_id: UUID, user_id: UUID, count: int = 1) -> list[UUID]:
        """Capture count photos for a user."""
        return [
            self.photo_service.capture_photo(session_id, user_id, f"blob-{uuid4()}")
            for _ in range(count)
        ]

    def owner_of(self, photo_id: UUID) -> UUID:
        return self.photo_repository.photos[photo_id].owner_id


def build_services() -> Services:
    session_repository = InMemorySessionRepository()
    photo_repository = InMemoryPhotoRepository(session_repository)
    trade_repository = InMemoryTradeRepository(photo_repository)
    stats_repository = InMemoryStatsRepository()
    blob_store = FakeBlobStore()
    gate = AccessGate(session_repository)
    stats_service = StatsService(
        repository=stats_repository,
        photo_repository=photo_repository,
        trade_repository=trade_repository,
        session_repository=session_repository,
    )
    photo_service = PhotoService(
        repository=photo_repository,
        blob_store=blob_store,
        gate=gate,
        stats_service=stats_service,
    )
    return Services(
        session_repository=session_repository,
        photo_repository=photo_repository,
        trade_repository=trade_repository,
        stats_repository=stats_repository,
        blob_store=blob_store,
        session_service=SessionService(
            repository=session_repository, gate=gate, stats_service=stats_service
        ),
        photo_service=photo_service,
        trade_service=TradeService(
            repository=trade_repository,
            photo_service=photo_service,
            gate=gate,
            stats_service=stats_service,
        ),
        stats_service=stats_service,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def services() -> Services:
    return build_services()


@pytest.fixture
def container(settings: Settings, services: Services) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_resolver=FakeIdentityResolver(),
        session_service=services.session_service,
        photo_service=services.photo_service,
        trade_service=services.trade_service,
        stats_service=services.stats_service,
        close_resources=close_resources,
    )

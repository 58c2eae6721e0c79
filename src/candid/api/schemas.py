"""Pydantic models for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from candid.domain.photos import VisiblePhoto
from candid.domain.sessions import SessionDetails, SessionRecord, SessionSummary
from candid.domain.stats import Badge, LeaderboardEntry, UserStats
from candid.domain.trades import PhotoTransfer, TradeRecord, TradeView


class CreateSessionRequest(BaseModel):
    """Payload for creating a session."""

    name: str = Field(min_length=1, max_length=120)
    reveal_time: datetime | None = None


class ProposeTradeRequest(BaseModel):
    """Payload for proposing a trade."""

    to_user_id: UUID
    offered_photo_ids: list[UUID]
    requested_photo_ids: list[UUID]


class RespondTradeRequest(BaseModel):
    """Payload for accepting or rejecting a trade."""

    accept: bool


class SessionOut(BaseModel):
    """Session payload."""

    id: UUID
    name: str
    host_id: UUID
    status: str
    reveal_time: datetime | None
    created_at: datetime

    @classmethod
    def from_record(cls, session: SessionRecord) -> "SessionOut":
        return cls(
            id=session.id,
            name=session.name,
            host_id=session.host_id,
            status=session.status.value,
            reveal_time=session.reveal_time,
            created_at=session.created_at,
        )


class SessionSummaryOut(SessionOut):
    """Session as listed for a participant."""

    participant_count: int
    is_host: bool

    @classmethod
    def from_summary(cls, summary: SessionSummary) -> "SessionSummaryOut":
        return cls(
            **SessionOut.from_record(summary.session).model_dump(),
            participant_count=summary.participant_count,
            is_host=summary.is_host,
        )


class ParticipantOut(BaseModel):
    """Session participant payload."""

    user_id: UUID
    joined_at: datetime


class SessionDetailsOut(SessionOut):
    """Session with participants."""

    participants: list[ParticipantOut]
    is_host: bool

    @classmethod
    def from_details(cls, details: SessionDetails) -> "SessionDetailsOut":
        return cls(
            **SessionOut.from_record(details.session).model_dump(),
            participants=[
                ParticipantOut(user_id=p.user_id, joined_at=p.joined_at)
                for p in details.participants
            ],
            is_host=details.is_host,
        )


class PhotoOut(BaseModel):
    """Photo as seen by the requesting viewer."""

    id: UUID
    session_id: UUID
    original_owner_id: UUID
    owner_id: UUID
    is_revealed: bool
    captured_at: datetime
    trade_count: int
    url: str | None
    can_trade: bool

    @classmethod
    def from_visible(cls, visible: VisiblePhoto) -> "PhotoOut":
        photo = visible.photo
        return cls(
            id=photo.id,
            session_id=photo.session_id,
            original_owner_id=photo.original_owner_id,
            owner_id=photo.owner_id,
            is_revealed=photo.is_revealed,
            captured_at=photo.captured_at,
            trade_count=photo.trade_count,
            url=visible.url,
            can_trade=visible.can_trade,
        )


class TradeOut(BaseModel):
    """Trade payload."""

    id: UUID
    session_id: UUID
    from_user_id: UUID
    to_user_id: UUID
    offered_photo_ids: list[UUID]
    requested_photo_ids: list[UUID]
    status: str
    created_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_record(cls, trade: TradeRecord) -> "TradeOut":
        return cls(
            id=trade.id,
            session_id=trade.session_id,
            from_user_id=trade.from_user_id,
            to_user_id=trade.to_user_id,
            offered_photo_ids=list(trade.offered),
            requested_photo_ids=list(trade.requested),
            status=trade.status.value,
            created_at=trade.created_at,
            completed_at=trade.completed_at,
        )


class TradeViewOut(TradeOut):
    """Trade with resolved photos for one of its parties."""

    offered_photos: list[PhotoOut]
    requested_photos: list[PhotoOut]
    is_sent: bool
    can_respond: bool

    @classmethod
    def from_view(cls, view: TradeView) -> "TradeViewOut":
        return cls(
            **TradeOut.from_record(view.trade).model_dump(),
            offered_photos=[PhotoOut.from_visible(p) for p in view.offered_photos],
            requested_photos=[PhotoOut.from_visible(p) for p in view.requested_photos],
            is_sent=view.is_sent,
            can_respond=view.can_respond,
        )


class TransferOut(BaseModel):
    """Ownership transfer audit entry."""

    photo_id: UUID
    from_user_id: UUID
    to_user_id: UUID
    trade_id: UUID
    transferred_at: datetime

    @classmethod
    def from_transfer(cls, transfer: PhotoTransfer) -> "TransferOut":
        return cls(
            photo_id=transfer.photo_id,
            from_user_id=transfer.from_user_id,
            to_user_id=transfer.to_user_id,
            trade_id=transfer.trade_id,
            transferred_at=transfer.transferred_at,
        )


class BadgeOut(BaseModel):
    """Earned badge payload."""

    id: str
    name: str
    earned_at: datetime
    criteria: str | None

    @classmethod
    def from_badge(cls, badge: Badge) -> "BadgeOut":
        return cls(
            id=badge.id,
            name=badge.name,
            earned_at=badge.earned_at,
            criteria=badge.criteria,
        )


class UserStatsOut(BaseModel):
    """Per-user statistics payload."""

    user_id: UUID
    total_photos: int
    total_trades: int
    sessions_attended: int
    sessions_hosted: int
    photos_received: int
    last_activity: datetime
    joined_at: datetime
    badges: list[BadgeOut]

    @classmethod
    def from_stats(cls, stats: UserStats) -> "UserStatsOut":
        return cls(
            user_id=stats.user_id,
            total_photos=stats.total_photos,
            total_trades=stats.total_trades,
            sessions_attended=stats.sessions_attended,
            sessions_hosted=stats.sessions_hosted,
            photos_received=stats.photos_received,
            last_activity=stats.last_activity,
            joined_at=stats.joined_at,
            badges=[BadgeOut.from_badge(badge) for badge in stats.badges],
        )


class LeaderboardEntryOut(BaseModel):
    """Leaderboard row payload."""

    user_id: UUID
    total_photos: int
    total_trades: int
    sessions_attended: int
    badges: list[BadgeOut]

    @classmethod
    def from_entry(cls, entry: LeaderboardEntry) -> "LeaderboardEntryOut":
        return cls(
            user_id=entry.user_id,
            total_photos=entry.total_photos,
            total_trades=entry.total_trades,
            sessions_attended=entry.sessions_attended,
            badges=[BadgeOut.from_badge(badge) for badge in entry.badges],
        )

"""Domain models for trades and ownership transfers."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from candid.domain.photos import VisiblePhoto


class TradeStatus(StrEnum):
    """Trade lifecycle; only pending trades may change."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class OfferSet:
    """Ordered, duplicate-free collection of photo ids on one side of a trade."""

    photo_ids: tuple[UUID, ...]

    @classmethod
    def of(cls, photo_ids: Iterable[UUID]) -> "OfferSet":
        """Build an offer set, dropping repeated ids but keeping first-seen order."""
        return cls(tuple(dict.fromkeys(photo_ids)))

    def __iter__(self) -> Iterator[UUID]:
        return iter(self.photo_ids)

    def __len__(self) -> int:
        return len(self.photo_ids)

    def __contains__(self, photo_id: object) -> bool:
        return photo_id in self.photo_ids


@dataclass(frozen=True)
class TradeRecord:
    """Represents a persisted trade offer."""

    id: UUID
    session_id: UUID
    from_user_id: UUID
    to_user_id: UUID
    offered: OfferSet
    requested: OfferSet
    status: TradeStatus
    created_at: datetime
    completed_at: datetime | None = None

    def references(self, photo_id: UUID) -> bool:
        """Return whether the photo appears on either side of the trade."""
        return photo_id in self.offered or photo_id in self.requested


@dataclass(frozen=True)
class PhotoTransfer:
    """Immutable audit entry of one photo changing hands in one trade."""

    photo_id: UUID
    from_user_id: UUID
    to_user_id: UUID
    trade_id: UUID
    transferred_at: datetime


@dataclass(frozen=True)
class TradeSettlement:
    """Every ownership change an accepted trade must apply as one unit."""

    trade_id: UUID
    completed_at: datetime
    transfers: tuple[PhotoTransfer, ...]

    @classmethod
    def for_trade(cls, trade: TradeRecord, completed_at: datetime) -> "TradeSettlement":
        """Derive the transfers for accepting a trade."""
        transfers = [
            PhotoTransfer(
                photo_id=photo_id,
                from_user_id=trade.from_user_id,
                to_user_id=trade.to_user_id,
                trade_id=trade.id,
                transferred_at=completed_at,
            )
            for photo_id in trade.offered
        ]
        transfers.extend(
            PhotoTransfer(
                photo_id=photo_id,
                from_user_id=trade.to_user_id,
                to_user_id=trade.from_user_id,
                trade_id=trade.id,
                transferred_at=completed_at,
            )
            for photo_id in trade.requested
        )
        return cls(
            trade_id=trade.id, completed_at=completed_at, transfers=tuple(transfers)
        )

    def received_by(self, user_id: UUID) -> int:
        """Return how many photos the user receives in this settlement."""
        return sum(1 for transfer in self.transfers if transfer.to_user_id == user_id)


class SettlementOutcome(StrEnum):
    """Result of attempting to apply a settlement."""

    APPLIED = "applied"
    NOT_PENDING = "not_pending"
    OWNERSHIP_CHANGED = "ownership_changed"


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of a settlement and the pending trades it invalidated."""

    outcome: SettlementOutcome
    invalidated_trade_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class TradeView:
    """A trade with resolved photos, as seen by one of its parties."""

    trade: TradeRecord
    offered_photos: list[VisiblePhoto]
    requested_photos: list[VisiblePhoto]
    is_sent: bool
    can_respond: bool

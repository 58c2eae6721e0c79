"""Trade proposal and settlement."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from candid.domain.errors import (
    AlreadyResolved,
    InvalidState,
    NotAuthorized,
    NotFound,
    NotOwner,
)
from candid.domain.photos import PhotoRecord, VisiblePhoto
from candid.domain.sessions import SessionStatus
from candid.domain.trades import (
    OfferSet,
    PhotoTransfer,
    SettlementOutcome,
    SettlementResult,
    TradeRecord,
    TradeSettlement,
    TradeStatus,
    TradeView,
)
from candid.services.auth import AccessGate
from candid.services.photos import PhotoService
from candid.services.stats import StatsService

_logger = logging.getLogger(__name__)


class TradeRepository(Protocol):
    """Persistence interface for trades and the transfer audit trail."""

    def create_trade(  # noqa: PLR0913
        self,
        session_id: UUID,
        from_user_id: UUID,
        to_user_id: UUID,
        offered: OfferSet,
        requested: OfferSet,
        created_at: datetime,
    ) -> TradeRecord:
        """Create a pending trade and return it."""

    def get_trade(self, trade_id: UUID) -> TradeRecord | None:
        """Return a trade by id, if present."""

    def list_session_trades(
        self, session_id: UUID, user_id: UUID
    ) -> list[TradeRecord]:
        """Return trades in a session sent or received by the user."""

    def list_accepted_trades(self, user_id: UUID) -> list[TradeRecord]:
        """Return accepted trades with the user on either side."""

    def reject_trade(self, trade_id: UUID) -> bool:
        """Move a pending trade to rejected; False if it was not pending."""

    def apply_settlement(self, settlement: TradeSettlement) -> SettlementResult:
        """Apply every transfer of an accepted trade as one atomic unit.

        Locks the trade and its photos, verifies the trade is pending and that
        each photo is still owned by the transfer's sender, then moves
        ownership, increments trade counts, appends transfer records, marks
        the trade accepted and rejects other pending trades referencing any
        exchanged photo.
        """

    def list_transfers(self, photo_id: UUID) -> list[PhotoTransfer]:
        """Return the transfer records for a photo, oldest first."""

    def list_received_transfers(self, user_id: UUID) -> list[PhotoTransfer]:
        """Return transfer records where the user received the photo."""


@dataclass
class TradeService:
    """Application service for proposing and settling trades."""

    repository: TradeRepository
    photo_service: PhotoService
    gate: AccessGate
    stats_service: StatsService

    def propose_trade(  # noqa: PLR0913
        self,
        session_id: UUID,
        from_user_id: UUID | None,
        to_user_id: UUID,
        offered_photo_ids: Iterable[UUID],
        requested_photo_ids: Iterable[UUID],
    ) -> UUID:
        """Validate and persist a pending trade offer."""
        proposer = self.gate.require_user(from_user_id)
        session = self.gate.require_session(session_id)
        self.gate.require_participant(session_id, proposer)
        self.gate.require_participant(session_id, to_user_id)
        if session.status != SessionStatus.REVEALED:
            raise InvalidState("Session not in reveal phase")
        if proposer == to_user_id:
            raise InvalidState("Cannot trade with yourself")

        offered = OfferSet.of(offered_photo_ids)
        requested = OfferSet.of(requested_photo_ids)
        if not offered:
            raise NotOwner("Offer at least one of your photos")
        if not requested:
            raise NotOwner("Request at least one photo")
        self._require_owned(
            session_id, offered, proposer, "You don't own one of the offered photos"
        )
        self._require_owned(
            session_id,
            requested,
            to_user_id,
            "Target user doesn't own one of the requested photos",
        )

        trade = self.repository.create_trade(
            session_id=session_id,
            from_user_id=proposer,
            to_user_id=to_user_id,
            offered=offered,
            requested=requested,
            created_at=datetime.now(tz=UTC),
        )
        _logger.info(
            "Trade proposed: trade_id=%s from=%s to=%s offered=%s requested=%s",
            trade.id,
            proposer,
            to_user_id,
            len(offered),
            len(requested),
        )
        return trade.id

    def respond_to_trade(
        self, trade_id: UUID, responder_id: UUID | None, accept: bool
    ) -> TradeRecord:
        """Accept or reject a pending trade addressed to the responder."""
        responder = self.gate.require_user(responder_id)
        trade = self.repository.get_trade(trade_id)
        if trade is None:
            raise NotFound("Trade not found")
        if trade.to_user_id != responder:
            raise NotAuthorized("Not authorized to respond to this trade")
        if trade.status != TradeStatus.PENDING:
            raise AlreadyResolved("Trade already responded to")

        if not accept:
            if not self.repository.reject_trade(trade_id):
                raise AlreadyResolved("Trade already responded to")
            _logger.info("Trade rejected: trade_id=%s", trade_id)
            return self._reload(trade_id)

        settlement = TradeSettlement.for_trade(trade, datetime.now(tz=UTC))
        result = self.repository.apply_settlement(settlement)
        if result.outcome == SettlementOutcome.NOT_PENDING:
            raise AlreadyResolved("Trade already responded to")
        if result.outcome == SettlementOutcome.OWNERSHIP_CHANGED:
            raise NotOwner("A photo in this trade has changed hands")

        self.stats_service.record_trade(settlement, trade.from_user_id)
        self.stats_service.record_trade(settlement, trade.to_user_id)
        _logger.info(
            "Trade accepted: trade_id=%s transfers=%s invalidated=%s",
            trade_id,
            len(settlement.transfers),
            [str(invalidated) for invalidated in result.invalidated_trade_ids],
        )
        return self._reload(trade_id)

    def list_user_trades(
        self, session_id: UUID, viewer_id: UUID | None
    ) -> list[TradeView]:
        """Return trades sent or received by the viewer in a session."""
        if viewer_id is None:
            return []
        trades = self.repository.list_session_trades(session_id, viewer_id)
        photo_ids = [
            photo_id
            for trade in trades
            for photo_id in (*trade.offered, *trade.requested)
        ]
        photos = self.photo_service.repository.get_photos(photo_ids)
        return [
            TradeView(
                trade=trade,
                offered_photos=self._present(trade.offered, photos, viewer_id),
                requested_photos=self._present(trade.requested, photos, viewer_id),
                is_sent=trade.from_user_id == viewer_id,
                can_respond=trade.to_user_id == viewer_id
                and trade.status == TradeStatus.PENDING,
            )
            for trade in trades
        ]

    def list_transfers(
        self, photo_id: UUID, viewer_id: UUID | None
    ) -> list[PhotoTransfer]:
        """Return the ownership history of a photo visible to the viewer."""
        if viewer_id is None:
            return []
        photo = self.photo_service.repository.get_photo(photo_id)
        if photo is None or not self.gate.session_repository.is_participant(
            photo.session_id, viewer_id
        ):
            return []
        return self.repository.list_transfers(photo_id)

    def _require_owned(
        self, session_id: UUID, offer: OfferSet, owner_id: UUID, message: str
    ) -> None:
        photos = self.photo_service.repository.get_photos(list(offer))
        for photo_id in offer:
            photo = photos.get(photo_id)
            if photo is None or photo.session_id != session_id:
                raise NotFound("Photo not found")
            if photo.owner_id != owner_id:
                raise NotOwner(message)

    def _present(
        self, offer: OfferSet, photos: dict[UUID, PhotoRecord], viewer_id: UUID
    ) -> list[VisiblePhoto]:
        return [
            self.photo_service.present(photos[photo_id], viewer_id)
            for photo_id in offer
            if photo_id in photos
        ]

    def _reload(self, trade_id: UUID) -> TradeRecord:
        trade = self.repository.get_trade(trade_id)
        if trade is None:
            raise NotFound("Trade not found")
        return trade

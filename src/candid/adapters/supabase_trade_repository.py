"""Supabase-backed trade and transfer repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from candid.adapters.supabase_rows import (
    parse_optional_timestamp,
    parse_timestamp,
    parse_uuid_list,
)
from candid.domain.trades import (
    OfferSet,
    PhotoTransfer,
    SettlementOutcome,
    SettlementResult,
    TradeRecord,
    TradeSettlement,
    TradeStatus,
)
from candid.services.trades import TradeRepository

_TRADE_COLUMNS = (
    "id, session_id, from_user_id, to_user_id, offered_photo_ids, "
    "requested_photo_ids, status, created_at, completed_at"
)
_TRANSFER_COLUMNS = "photo_id, from_user_id, to_user_id, trade_id, transferred_at"


@dataclass
class SupabaseTradeRepository(TradeRepository):
    """Supabase implementation for trades and the transfer audit trail."""

    client: Client

    def create_trade(  # noqa: PLR0913
        self,
        session_id: UUID,
        from_user_id: UUID,
        to_user_id: UUID,
        offered: OfferSet,
        requested: OfferSet,
        created_at: datetime,
    ) -> TradeRecord:
        """Create a pending trade row and return it."""
        response = (
            self.client.table("trades")
            .insert(
                {
                    "session_id": str(session_id),
                    "from_user_id": str(from_user_id),
                    "to_user_id": str(to_user_id),
                    "offered_photo_ids": [str(photo_id) for photo_id in offered],
                    "requested_photo_ids": [str(photo_id) for photo_id in requested],
                    "status": TradeStatus.PENDING.value,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create trade")
        return _parse_trade(response.data[0])

    def get_trade(self, trade_id: UUID) -> TradeRecord | None:
        """Return a trade by id, if present."""
        response = (
            self.client.table("trades")
            .select(_TRADE_COLUMNS)
            .eq("id", str(trade_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_trade(response.data[0])

    def list_session_trades(
        self, session_id: UUID, user_id: UUID
    ) -> list[TradeRecord]:
        """Return trades in a session where the user is either party."""
        response = (
            self.client.table("trades")
            .select(_TRADE_COLUMNS)
            .eq("session_id", str(session_id))
            .or_(f"from_user_id.eq.{user_id},to_user_id.eq.{user_id}")
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_trade(row) for row in response.data or []]

    def list_accepted_trades(self, user_id: UUID) -> list[TradeRecord]:
        """Return accepted trades where the user is either party."""
        response = (
            self.client.table("trades")
            .select(_TRADE_COLUMNS)
            .eq("status", TradeStatus.ACCEPTED.value)
            .or_(f"from_user_id.eq.{user_id},to_user_id.eq.{user_id}")
            .execute()
        )
        return [_parse_trade(row) for row in response.data or []]

    def reject_trade(self, trade_id: UUID) -> bool:
        """Reject a trade only if it is still pending."""
        response = self.client.rpc(
            "reject_trade", {"p_trade_id": str(trade_id)}
        ).execute()
        return response.data is True

    def apply_settlement(self, settlement: TradeSettlement) -> SettlementResult:
        """Run apply_trade_settlement, which locks the trade and its photos."""
        response = self.client.rpc(
            "apply_trade_settlement",
            {
                "p_trade_id": str(settlement.trade_id),
                "p_completed_at": settlement.completed_at.isoformat(),
                "p_transfers": [
                    {
                        "photo_id": str(transfer.photo_id),
                        "from_user_id": str(transfer.from_user_id),
                        "to_user_id": str(transfer.to_user_id),
                    }
                    for transfer in settlement.transfers
                ],
            },
        ).execute()
        payload = response.data
        if not isinstance(payload, dict) or "outcome" not in payload:
            raise RuntimeError("Unexpected apply_trade_settlement response")
        return SettlementResult(
            outcome=SettlementOutcome(payload["outcome"]),
            invalidated_trade_ids=tuple(
                parse_uuid_list(payload.get("invalidated_trade_ids"))
            ),
        )

    def list_transfers(self, photo_id: UUID) -> list[PhotoTransfer]:
        """Return the transfer history of a photo."""
        response = (
            self.client.table("photo_transfers")
            .select(_TRANSFER_COLUMNS)
            .eq("photo_id", str(photo_id))
            .order("transferred_at", desc=False)
            .execute()
        )
        return [_parse_transfer(row) for row in response.data or []]

    def list_received_transfers(self, user_id: UUID) -> list[PhotoTransfer]:
        """Return transfers received by the user."""
        response = (
            self.client.table("photo_transfers")
            .select(_TRANSFER_COLUMNS)
            .eq("to_user_id", str(user_id))
            .order("transferred_at", desc=False)
            .execute()
        )
        return [_parse_transfer(row) for row in response.data or []]


def _parse_trade(row: dict[str, object]) -> TradeRecord:
    return TradeRecord(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        from_user_id=UUID(str(row["from_user_id"])),
        to_user_id=UUID(str(row["to_user_id"])),
        offered=OfferSet.of(parse_uuid_list(row.get("offered_photo_ids"))),
        requested=OfferSet.of(parse_uuid_list(row.get("requested_photo_ids"))),
        status=TradeStatus(row["status"]),
        created_at=parse_timestamp(row["created_at"]),
        completed_at=parse_optional_timestamp(row.get("completed_at")),
    )


def _parse_transfer(row: dict[str, object]) -> PhotoTransfer:
    return PhotoTransfer(
        photo_id=UUID(str(row["photo_id"])),
        from_user_id=UUID(str(row["from_user_id"])),
        to_user_id=UUID(str(row["to_user_id"])),
        trade_id=UUID(str(row["trade_id"])),
        transferred_at=parse_timestamp(row["transferred_at"]),
    )

"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from candid.api.admin import router as admin_router
from candid.api.schemas import (
    BadgeOut,
    CreateSessionRequest,
    LeaderboardEntryOut,
    PhotoOut,
    ProposeTradeRequest,
    RespondTradeRequest,
    SessionDetailsOut,
    SessionOut,
    SessionSummaryOut,
    TradeOut,
    TradeViewOut,
    TransferOut,
    UserStatsOut,
)
from candid.app_logging import configure_logging
from candid.config import parse_allowed_origins
from candid.containers import AppContainer
from candid.domain.errors import (
    CandidError,
    InvalidState,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
    NotOwner,
)

_ERROR_STATUS: list[tuple[type[CandidError], int]] = [
    (NotAuthenticated, status.HTTP_401_UNAUTHORIZED),
    (NotAuthorized, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (NotOwner, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_409_CONFLICT),
]


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def current_user_id(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID | None:
    """Resolve the caller from a bearer token; None when unauthenticated."""
    token = _bearer_token(authorization)
    return _container(request).identity_resolver.current_user_id(token)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    origins = parse_allowed_origins(container.settings.cors_allowed_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(admin_router)

    @app.exception_handler(CandidError)
    async def handle_domain_error(request: Request, exc: CandidError) -> JSONResponse:
        status_code = _status_for(exc)
        logger.info(
            "Request rejected: path=%s error=%s status=%s",
            request.url.path,
            type(exc).__name__,
            status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    def create_session(
        body: CreateSessionRequest,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> SessionOut:
        """Create a session hosted by the caller."""
        session = _container(request).session_service.create_session(
            user_id, body.name, body.reveal_time
        )
        return SessionOut.from_record(session)

    @app.get("/sessions")
    def list_sessions(
        request: Request, user_id: UUID | None = Depends(current_user_id)
    ) -> list[SessionSummaryOut]:
        """List the caller's sessions."""
        summaries = _container(request).session_service.list_user_sessions(user_id)
        return [SessionSummaryOut.from_summary(summary) for summary in summaries]

    @app.get("/sessions/{session_id}")
    def session_details(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> SessionDetailsOut | None:
        """Return session details for participants."""
        details = _container(request).session_service.get_session_details(
            session_id, user_id
        )
        return SessionDetailsOut.from_details(details) if details else None

    @app.post("/sessions/{session_id}/join")
    def join_session(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> SessionOut:
        """Join a session."""
        session = _container(request).session_service.join_session(session_id, user_id)
        return SessionOut.from_record(session)

    @app.post("/sessions/{session_id}/reveal")
    def reveal_session(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> dict[str, int]:
        """Reveal all photos of a session."""
        revealed = _container(request).photo_service.reveal_session(
            session_id, user_id
        )
        return {"revealed": revealed}

    @app.post("/sessions/{session_id}/photos", status_code=status.HTTP_201_CREATED)
    async def upload_photo(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
        content_type: str = Header(default="image/jpeg"),
    ) -> dict[str, UUID]:
        """Capture a photo from the raw image request body."""
        data = await request.body()
        photo_id = _container(request).photo_service.upload_photo(
            session_id, user_id, data, content_type
        )
        return {"id": photo_id}

    @app.get("/sessions/{session_id}/photos")
    def session_photos(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> list[PhotoOut]:
        """List photos visible to the caller."""
        photos = _container(request).photo_service.list_visible_photos(
            session_id, user_id
        )
        return [PhotoOut.from_visible(photo) for photo in photos]

    @app.get("/photos/mine")
    def my_photos(
        request: Request, user_id: UUID | None = Depends(current_user_id)
    ) -> list[PhotoOut]:
        """List photos the caller currently owns."""
        photos = _container(request).photo_service.list_owned_photos(user_id)
        return [PhotoOut.from_visible(photo) for photo in photos]

    @app.get("/photos/{photo_id}/transfers")
    def photo_transfers(
        photo_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> list[TransferOut]:
        """Return the ownership history of a photo."""
        transfers = _container(request).trade_service.list_transfers(
            photo_id, user_id
        )
        return [TransferOut.from_transfer(transfer) for transfer in transfers]

    @app.post("/sessions/{session_id}/trades", status_code=status.HTTP_201_CREATED)
    def propose_trade(
        session_id: UUID,
        body: ProposeTradeRequest,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> dict[str, UUID]:
        """Propose a trade to another participant."""
        trade_id = _container(request).trade_service.propose_trade(
            session_id=session_id,
            from_user_id=user_id,
            to_user_id=body.to_user_id,
            offered_photo_ids=body.offered_photo_ids,
            requested_photo_ids=body.requested_photo_ids,
        )
        return {"id": trade_id}

    @app.get("/sessions/{session_id}/trades")
    def session_trades(
        session_id: UUID,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> list[TradeViewOut]:
        """List trades sent or received by the caller."""
        views = _container(request).trade_service.list_user_trades(session_id, user_id)
        return [TradeViewOut.from_view(view) for view in views]

    @app.post("/trades/{trade_id}/respond")
    def respond_to_trade(
        trade_id: UUID,
        body: RespondTradeRequest,
        request: Request,
        user_id: UUID | None = Depends(current_user_id),
    ) -> TradeOut:
        """Accept or reject a trade addressed to the caller."""
        trade = _container(request).trade_service.respond_to_trade(
            trade_id, user_id, body.accept
        )
        return TradeOut.from_record(trade)

    @app.get("/stats/me")
    def my_stats(
        request: Request, user_id: UUID | None = Depends(current_user_id)
    ) -> UserStatsOut | None:
        """Return the caller's statistics."""
        stats = _container(request).stats_service.get_user_stats(user_id)
        return UserStatsOut.from_stats(stats) if stats else None

    @app.post("/stats/me/badges")
    def evaluate_badges(
        request: Request, user_id: UUID | None = Depends(current_user_id)
    ) -> list[BadgeOut]:
        """Award any newly earned badges and return the caller's badges."""
        if user_id is None:
            raise NotAuthenticated("Not authenticated")
        badges = _container(request).stats_service.calculate_and_assign_badges(
            user_id
        )
        return [BadgeOut.from_badge(badge) for badge in badges]

    @app.get("/leaderboard")
    def leaderboard(
        request: Request, user_id: UUID | None = Depends(current_user_id)
    ) -> list[LeaderboardEntryOut]:
        """Return users ranked by photos, then trades."""
        entries = _container(request).stats_service.get_leaderboard(user_id)
        return [LeaderboardEntryOut.from_entry(entry) for entry in entries]

    return app


def _status_for(exc: CandidError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

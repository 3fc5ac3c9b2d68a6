"""
BuildMarket Backend: Leaderboard Route
=======================================

What:  GET /api/leaderboard, the top builds by sales, reviews and views.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.database import get_db_session
from buildmarket.routes.deps import get_build_service
from buildmarket.schemas.build import GameType, LeaderboardEntry
from buildmarket.schemas.common import ErrorResponse
from buildmarket.services.build_service import BuildService

router = APIRouter(prefix="/api/leaderboard", tags=["Leaderboard"])


@router.get(
    "",
    response_model=List[LeaderboardEntry],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Top builds",
    description=(
        "Active and sold builds ranked by sales, then average review (unreviewed "
        "last), then views. Optionally limited to one `game_type`."
    ),
)
async def get_leaderboard(
    request: Request,
    game_type: GameType | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, description="Number of entries"),
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> List[LeaderboardEntry]:
    settings = request.app.state.settings
    size = min(limit or settings.default_page_size, settings.max_page_size)
    return await builds.leaderboard(db, game_type=game_type, limit=size)

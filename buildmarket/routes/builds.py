"""
BuildMarket Backend: Build Listing Routes
==========================================

What:  Marketplace feed, listing detail, create/delete, purchase, reviews
       and flags.
How:   Handlers validate input, delegate to services, and unwrap results.

Identity:
    Authentication is handled upstream. Buyers identify themselves with the
    `buyer_id` query parameter (read-only scoring) or in the request body
    (purchases, reviews); sellers deleting a listing send `X-Seller-ID`.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.database import get_db_session
from buildmarket.routes.deps import (
    get_build_service,
    get_moderation_service,
    get_purchase_service,
    get_review_service,
    unwrap,
)
from buildmarket.schemas.build import (
    BuildCreate,
    BuildFilters,
    BuildListResponse,
    BuildResponse,
    BuildSort,
    FlagCreate,
    FlagResponse,
    GameType,
    PurchaseCreate,
    PurchaseResponse,
    ReviewCreate,
    ReviewResponse,
)
from buildmarket.schemas.common import ErrorResponse
from buildmarket.schemas.compatibility import CompatibilityResult
from buildmarket.services.build_service import BuildService
from buildmarket.services.moderation_service import ModerationService
from buildmarket.services.purchase_service import PurchaseService
from buildmarket.services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/builds", tags=["Builds"])


@router.get(
    "",
    response_model=BuildListResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Browse active builds",
    description=(
        "Active listings with optional filters. Pass `buyer_id` to get a "
        "compatibility score on every item and to enable `sort=compatibility`."
    ),
)
async def list_builds(
    request: Request,
    response: Response,
    game_type: GameType | None = Query(default=None),
    position: str | None = Query(default=None, max_length=20),
    max_price_cents: int | None = Query(default=None, ge=0),
    sort: BuildSort = Query(default=BuildSort.NEWEST),
    buyer_id: str | None = Query(default=None, max_length=64),
    limit: int | None = Query(default=None, ge=1, description="Items per page"),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> BuildListResponse:
    settings = request.app.state.settings
    filters = BuildFilters(
        game_type=game_type,
        position=position,
        max_price_cents=max_price_cents,
        sort=sort,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        offset=offset,
    )
    result = await builds.list_builds(db, filters, buyer_id=buyer_id)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "",
    response_model=BuildResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "Invalid listing", "model": ErrorResponse}},
    summary="List a build for sale",
    description="New listings are `pending` until a moderator approves them.",
)
async def create_build(
    payload: BuildCreate,
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> BuildResponse:
    return unwrap(await builds.create_build(db, payload))


@router.get(
    "/{build_id}",
    response_model=BuildResponse,
    responses={404: {"description": "Build not found", "model": ErrorResponse}},
    summary="Build detail",
)
async def get_build(
    build_id: UUID,
    buyer_id: str | None = Query(default=None, max_length=64),
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> BuildResponse:
    return unwrap(await builds.get_build(db, build_id, buyer_id=buyer_id))


@router.get(
    "/{build_id}/compatibility",
    response_model=CompatibilityResult,
    responses={404: {"description": "Build not found", "model": ErrorResponse}},
    summary="Compatibility of a build with a buyer",
)
async def get_compatibility(
    build_id: UUID,
    buyer_id: str = Query(min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> CompatibilityResult:
    return unwrap(await builds.compatibility_for(db, build_id, buyer_id))


@router.delete(
    "/{build_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Not the seller", "model": ErrorResponse},
        404: {"description": "Build not found", "model": ErrorResponse},
        409: {"description": "Build already sold", "model": ErrorResponse},
    },
    summary="Withdraw a listing",
)
async def delete_build(
    build_id: UUID,
    x_seller_id: str = Header(min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> Response:
    unwrap(await builds.delete_build(db, build_id, x_seller_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{build_id}/purchase",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Seller buying own build", "model": ErrorResponse},
        404: {"description": "Build not found", "model": ErrorResponse},
        409: {"description": "Build not available", "model": ErrorResponse},
    },
    summary="Purchase a build",
    description="Returns the import code. Call only after payment has cleared.",
)
async def purchase_build(
    build_id: UUID,
    payload: PurchaseCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    purchases: PurchaseService = Depends(get_purchase_service),
) -> PurchaseResponse:
    result = unwrap(await purchases.purchase(db, build_id, payload))
    # Contains the import code
    response.headers["Cache-Control"] = "no-store"
    return result


@router.post(
    "/{build_id}/flags",
    response_model=FlagResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Build not found", "model": ErrorResponse}},
    summary="Report a listing",
)
async def flag_build(
    build_id: UUID,
    payload: FlagCreate,
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> FlagResponse:
    return unwrap(await moderation.flag(db, build_id, payload))


@router.post(
    "/{build_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Caller didn't buy this build", "model": ErrorResponse},
        404: {"description": "Build not found", "model": ErrorResponse},
        409: {"description": "Already reviewed", "model": ErrorResponse},
    },
    summary="Review a purchased build",
    description="One review per buyer per build, 1-5 stars.",
)
async def review_build(
    build_id: UUID,
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db_session),
    reviews: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    return unwrap(await reviews.create_review(db, build_id, payload))


@router.get(
    "/{build_id}/reviews",
    response_model=List[ReviewResponse],
    responses={404: {"description": "Build not found", "model": ErrorResponse}},
    summary="Reviews of a build, newest first",
)
async def list_reviews(
    build_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    reviews: ReviewService = Depends(get_review_service),
) -> List[ReviewResponse]:
    return unwrap(await reviews.reviews_for_build(db, build_id))

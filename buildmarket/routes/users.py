"""
BuildMarket Backend: User Dashboard Routes
===========================================

What:  Per-user views: a seller's listings and earnings, a buyer's purchases.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.database import get_db_session
from buildmarket.routes.deps import get_build_service, get_purchase_service
from buildmarket.schemas.build import BuildResponse, EarningsResponse, PurchaseResponse
from buildmarket.services.build_service import BuildService
from buildmarket.services.purchase_service import PurchaseService

router = APIRouter(prefix="/api/users", tags=["Users"])

UserId = Annotated[str, Path(min_length=1, max_length=64)]


@router.get("/{user_id}/builds", response_model=List[BuildResponse], summary="A seller's listings")
async def seller_builds(
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
    builds: BuildService = Depends(get_build_service),
) -> List[BuildResponse]:
    return await builds.seller_builds(db, user_id)


@router.get("/{user_id}/earnings", response_model=EarningsResponse, summary="A seller's earnings")
async def seller_earnings(
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
    purchases: PurchaseService = Depends(get_purchase_service),
) -> EarningsResponse:
    return await purchases.seller_earnings(db, user_id)


@router.get(
    "/{user_id}/purchases",
    response_model=List[PurchaseResponse],
    summary="A buyer's purchases, with import codes",
)
async def buyer_purchases(
    response: Response,
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
    purchases: PurchaseService = Depends(get_purchase_service),
) -> List[PurchaseResponse]:
    response.headers["Cache-Control"] = "no-store"
    return await purchases.buyer_purchases(db, user_id)

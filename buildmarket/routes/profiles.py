"""
BuildMarket Backend: Buyer Profile Routes
==========================================

What:  Save and read a buyer's playstyle (onboarding sliders).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.database import get_db_session
from buildmarket.routes.deps import get_profile_service, unwrap
from buildmarket.schemas.common import ErrorResponse
from buildmarket.schemas.profile import PlaystyleUpdate, ProfileResponse
from buildmarket.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])

BuyerId = Annotated[str, Path(min_length=1, max_length=64, description="Opaque buyer identity")]


@router.put(
    "/{buyer_id}/playstyle",
    response_model=ProfileResponse,
    responses={422: {"description": "Vector is not 8 integers in 1-10", "model": ErrorResponse}},
    summary="Save the buyer's playstyle vector",
)
async def save_playstyle(
    payload: PlaystyleUpdate,
    buyer_id: BuyerId,
    db: AsyncSession = Depends(get_db_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    return unwrap(await profiles.save_playstyle(db, buyer_id, payload))


@router.get(
    "/{buyer_id}",
    response_model=ProfileResponse,
    responses={404: {"description": "No profile yet", "model": ErrorResponse}},
    summary="Get a buyer profile",
)
async def get_profile(
    buyer_id: BuyerId,
    db: AsyncSession = Depends(get_db_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    return unwrap(await profiles.get_profile(db, buyer_id))

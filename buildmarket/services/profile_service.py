"""
BuildMarket Backend: Profile Service
=====================================

What:  Saves and reads a buyer's onboarding playstyle.
Who:   PUT/GET /api/profiles/{buyer_id}; BuildService reads vectors through
       `playstyle_vector_for()` to score listings.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.exceptions import DatabaseError
from buildmarket.models.profile import BuyerProfile
from buildmarket.schemas.profile import PlaystyleUpdate, ProfileResponse
from buildmarket.services.compatibility import playstyle_labels
from buildmarket.services.result import ServiceResult

logger = logging.getLogger(__name__)


def to_profile_response(profile: BuyerProfile) -> ProfileResponse:
    vector = profile.playstyle_vector
    return ProfileResponse(
        buyer_id=profile.buyer_id,
        preferred_sport=profile.preferred_sport,
        playstyle_vector=vector,
        playstyle_labels=playstyle_labels(vector) if vector else None,
        updated_at=profile.updated_at,
    )


class ProfileService:
    """Stateless; every method receives the request's session."""

    async def save_playstyle(
        self,
        db: AsyncSession,
        buyer_id: str,
        update: PlaystyleUpdate,
    ) -> ServiceResult[ProfileResponse]:
        """
        Create or replace the buyer's playstyle vector.

        The first save happens at onboarding; later saves edit it. A missing
        preferred_sport keeps the previously stored one.
        """
        try:
            profile = await db.get(BuyerProfile, buyer_id)
            if profile is None:
                profile = BuyerProfile(buyer_id=buyer_id)
                db.add(profile)
                logger.info("Creating buyer profile %s", buyer_id)

            profile.playstyle_vector = list(update.vector)
            if update.preferred_sport is not None:
                profile.preferred_sport = update.preferred_sport.value
            await db.flush()
            await db.refresh(profile)
        except SQLAlchemyError as e:
            logger.error("Database error saving playstyle for %s: %s", buyer_id, str(e))
            raise DatabaseError(
                message="Could not save your playstyle. Please try again.",
                context={"buyer_id": buyer_id},
            )
        return ServiceResult.success(to_profile_response(profile))

    async def get_profile(
        self, db: AsyncSession, buyer_id: str
    ) -> ServiceResult[ProfileResponse]:
        try:
            profile = await db.get(BuyerProfile, buyer_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching profile %s: %s", buyer_id, str(e))
            raise DatabaseError(context={"buyer_id": buyer_id})
        if profile is None:
            return ServiceResult.not_found("profile", buyer_id)
        return ServiceResult.success(to_profile_response(profile))

    async def playstyle_vector_for(
        self, db: AsyncSession, buyer_id: Optional[str]
    ) -> Optional[List[int]]:
        """The buyer's vector, or None (scores then fall back to neutral)."""
        if not buyer_id:
            return None
        try:
            result = await db.execute(
                select(BuyerProfile.playstyle_vector).where(BuyerProfile.buyer_id == buyer_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error reading playstyle for %s: %s", buyer_id, str(e))
            raise DatabaseError(context={"buyer_id": buyer_id})

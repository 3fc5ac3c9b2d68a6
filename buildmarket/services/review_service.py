"""
BuildMarket Backend: Review Service
====================================

What:  Buyer reviews (1-5 stars + optional comment) of purchased builds.
Who:   POST/GET /api/builds/{id}/reviews; BuildService for the detail view.

Rules:
    - Only the buyer recorded on the build's purchase may review it.
    - One review per buyer per build; a second attempt is a CONFLICT.
    - The build's review_count / rating_total move in the same transaction,
      as SQL increments.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.exceptions import DatabaseError
from buildmarket.models.build import Build
from buildmarket.models.purchase import Purchase
from buildmarket.models.review import Review
from buildmarket.schemas.build import BuildStatus, ReviewCreate, ReviewResponse
from buildmarket.services.result import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)

PUBLIC_STATUSES = (BuildStatus.ACTIVE.value, BuildStatus.SOLD.value)


class ReviewService:

    async def create_review(
        self,
        db: AsyncSession,
        build_id: UUID,
        payload: ReviewCreate,
    ) -> ServiceResult[ReviewResponse]:
        """
        Record a buyer's review.

        Outcomes:
            NOT_FOUND  build doesn't exist
            FORBIDDEN  the caller didn't buy this build
            CONFLICT   the buyer already reviewed it
        """
        try:
            build = await db.get(Build, build_id)
            if build is None:
                return ServiceResult.not_found("build", build_id)

            purchase = (
                await db.execute(
                    select(Purchase).where(
                        Purchase.build_id == build_id,
                        Purchase.buyer_id == payload.buyer_id,
                    )
                )
            ).scalar_one_or_none()
            if purchase is None:
                return ServiceResult.failure(
                    ErrorKind.FORBIDDEN, "Only the buyer of this build can review it"
                )

            existing = (
                await db.execute(
                    select(Review.id).where(
                        Review.build_id == build_id,
                        Review.buyer_id == payload.buyer_id,
                    )
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking review of %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})

        if existing is not None:
            return ServiceResult.failure(
                ErrorKind.CONFLICT, "You have already reviewed this build"
            )

        review = Review(
            build_id=build_id,
            purchase_id=purchase.id,
            buyer_id=payload.buyer_id,
            rating=payload.rating,
            comment=payload.comment,
        )
        try:
            db.add(review)
            await db.flush()
            await db.execute(
                update(Build)
                .where(Build.id == build_id)
                .values(
                    review_count=Build.review_count + 1,
                    rating_total=Build.rating_total + payload.rating,
                )
                .execution_options(synchronize_session=False)
            )
        except IntegrityError:
            await db.rollback()
            return ServiceResult.failure(
                ErrorKind.CONFLICT, "You have already reviewed this build"
            )
        except SQLAlchemyError as e:
            logger.error("Database error saving review of %s: %s", build_id, str(e))
            raise DatabaseError(
                message="Could not save your review. Please try again.",
                context={"build_id": str(build_id)},
            )

        logger.info("Build %s reviewed %d★ by %s", build_id, payload.rating, payload.buyer_id)
        return ServiceResult.success(ReviewResponse.model_validate(review))

    async def list_reviews(self, db: AsyncSession, build_id: UUID) -> List[ReviewResponse]:
        """Newest first."""
        try:
            result = await db.execute(
                select(Review)
                .where(Review.build_id == build_id)
                .order_by(desc(Review.created_at))
            )
            reviews = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing reviews of %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})
        return [ReviewResponse.model_validate(review) for review in reviews]

    async def reviews_for_build(
        self, db: AsyncSession, build_id: UUID
    ) -> ServiceResult[List[ReviewResponse]]:
        """Public review list; hidden (pending/rejected) builds look missing."""
        try:
            build = await db.get(Build, build_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching build %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})
        if build is None or build.status not in PUBLIC_STATUSES:
            return ServiceResult.not_found("build", build_id)
        return ServiceResult.success(await self.list_reviews(db, build_id))

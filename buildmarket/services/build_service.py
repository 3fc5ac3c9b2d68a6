"""
BuildMarket Backend: Build Listing Service
===========================================

What:  Listing lifecycle for sellers and the marketplace feed for buyers.
How:   Plain async SQLAlchemy queries; every listing shown to a known buyer
       is scored against their playstyle on the fly.
Who:   /api/builds routes, /api/users/{seller_id}/builds and /api/leaderboard.

Visibility rules:
    - The feed shows only `active` builds.
    - Detail pages show `active` and `sold` builds (buyers revisit what they
      bought); pending/rejected listings look like they don't exist.
    - Sellers see all of their own listings.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.exceptions import DatabaseError
from buildmarket.models.build import Build
from buildmarket.models.purchase import Purchase
from buildmarket.schemas.build import (
    BuildAttributes,
    BuildCreate,
    BuildFilters,
    BuildListResponse,
    BuildResponse,
    BuildSort,
    BuildStatus,
    GameType,
    LeaderboardEntry,
    ReviewResponse,
)
from buildmarket.schemas.compatibility import CompatibilityResult
from buildmarket.services.compatibility import round_half_up, score_compatibility
from buildmarket.services.profile_service import ProfileService
from buildmarket.services.result import ErrorKind, ServiceResult
from buildmarket.services.review_service import ReviewService

logger = logging.getLogger(__name__)

VISIBLE_STATUSES = (BuildStatus.ACTIVE.value, BuildStatus.SOLD.value)


def overall_rating(attributes: BuildAttributes) -> int:
    """Mean of the 17 ratings, rounded half-up."""
    values = list(attributes.model_dump().values())
    return round_half_up(sum(values) / len(values))


def compatibility_for_build(
    buyer_vector: Optional[Sequence[int]], build: Build
) -> CompatibilityResult:
    return score_compatibility(buyer_vector, build.build_vector, build.shooting)


def to_build_response(
    build: Build,
    compatibility: Optional[CompatibilityResult] = None,
    reviews: Optional[List[ReviewResponse]] = None,
) -> BuildResponse:
    response = BuildResponse.model_validate(build)
    changes = {}
    if compatibility is not None:
        changes["compatibility"] = compatibility
    if reviews is not None:
        changes["reviews"] = reviews
    return response.model_copy(update=changes) if changes else response


class BuildService:
    """
    Business logic for build listings.

    Dependencies are passed in by the application factory; the service holds
    no per-request state.
    """

    def __init__(self, profiles: ProfileService, reviews: ReviewService):
        self.profiles = profiles
        self.reviews = reviews

    async def create_build(
        self, db: AsyncSession, payload: BuildCreate
    ) -> ServiceResult[BuildResponse]:
        """New listings start `pending` until a moderator approves them."""
        data = payload.model_dump(exclude={"attributes", "performance", "game_type"})
        build = Build(
            **data,
            game_type=payload.game_type.value,
            status=BuildStatus.PENDING.value,
            performance=(
                payload.performance.model_dump(exclude_none=True)
                if payload.performance
                else None
            ),
            attributes=payload.attributes.model_dump() if payload.attributes else None,
            overall_rating=overall_rating(payload.attributes) if payload.attributes else None,
        )
        try:
            db.add(build)
            await db.flush()
            await db.refresh(build)
        except SQLAlchemyError as e:
            logger.error("Database error creating build: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the listing. Please try again.",
                context={"seller_id": payload.seller_id},
            )
        logger.info("Build %s listed by seller %s (pending review)", build.id, build.seller_id)
        return ServiceResult.success(to_build_response(build))

    async def _fetch(self, db: AsyncSession, build_id: UUID) -> Optional[Build]:
        try:
            result = await db.execute(select(Build).where(Build.id == build_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching build %s: %s", build_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the build. Please try again.",
                context={"build_id": str(build_id)},
            )

    async def _count_view(self, db: AsyncSession, build: Build) -> None:
        """Bump view_count in SQL so concurrent detail views aren't lost."""
        try:
            await db.execute(
                update(Build)
                .where(Build.id == build.id)
                .values(view_count=Build.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(build, attribute_names=["view_count"])
        except SQLAlchemyError as e:
            logger.error("Database error counting a view of %s: %s", build.id, str(e))
            raise DatabaseError(context={"build_id": str(build.id)})

    async def get_build(
        self,
        db: AsyncSession,
        build_id: UUID,
        buyer_id: Optional[str] = None,
    ) -> ServiceResult[BuildResponse]:
        """
        Detail view. Counts a view, attaches the build's reviews, and scores
        the build for `buyer_id`.

        A buyer without a saved playstyle still gets a (neutral) score.
        """
        build = await self._fetch(db, build_id)
        if build is None or build.status not in VISIBLE_STATUSES:
            return ServiceResult.not_found("build", build_id)

        await self._count_view(db, build)
        reviews = await self.reviews.list_reviews(db, build.id)

        compatibility = None
        if buyer_id:
            vector = await self.profiles.playstyle_vector_for(db, buyer_id)
            compatibility = compatibility_for_build(vector, build)
        return ServiceResult.success(to_build_response(build, compatibility, reviews))

    async def compatibility_for(
        self, db: AsyncSession, build_id: UUID, buyer_id: str
    ) -> ServiceResult[CompatibilityResult]:
        build = await self._fetch(db, build_id)
        if build is None or build.status not in VISIBLE_STATUSES:
            return ServiceResult.not_found("build", build_id)
        vector = await self.profiles.playstyle_vector_for(db, buyer_id)
        return ServiceResult.success(compatibility_for_build(vector, build))

    async def list_builds(
        self,
        db: AsyncSession,
        filters: BuildFilters,
        buyer_id: Optional[str] = None,
    ) -> BuildListResponse:
        """
        Marketplace feed of active builds.

        Sorting:
            newest         featured first, then created_at DESC
            price_asc/desc price_cents
            rating         overall_rating DESC (unrated last)
            compatibility  score DESC for `buyer_id`, computed in Python
                           because the score isn't stored

        Returns:
            BuildListResponse with the page, total matches and has_more.
        """
        try:
            query = select(Build).where(Build.status == BuildStatus.ACTIVE.value)
            if filters.game_type is not None:
                query = query.where(Build.game_type == filters.game_type.value)
            if filters.position:
                query = query.where(Build.position == filters.position)
            if filters.max_price_cents is not None:
                query = query.where(Build.price_cents <= filters.max_price_cents)

            count_query = select(func.count()).select_from(query.subquery())
            total_count = (await db.execute(count_query)).scalar() or 0

            if filters.sort == BuildSort.PRICE_ASC:
                query = query.order_by(asc(Build.price_cents), desc(Build.created_at))
            elif filters.sort == BuildSort.PRICE_DESC:
                query = query.order_by(desc(Build.price_cents), desc(Build.created_at))
            elif filters.sort == BuildSort.RATING:
                query = query.order_by(
                    Build.overall_rating.is_(None),
                    desc(Build.overall_rating),
                    desc(Build.created_at),
                )
            else:
                query = query.order_by(desc(Build.featured), desc(Build.created_at))

            by_compatibility = filters.sort == BuildSort.COMPATIBILITY
            if not by_compatibility:
                query = query.offset(filters.offset).limit(filters.limit)

            builds: List[Build] = list((await db.execute(query)).scalars().all())
            buyer_vector = await self.profiles.playstyle_vector_for(db, buyer_id)
        except SQLAlchemyError as e:
            logger.error("Database error listing builds: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve builds. Please try again.",
                context={"error_type": type(e).__name__},
            )

        scored = [
            (build, compatibility_for_build(buyer_vector, build) if buyer_id else None)
            for build in builds
        ]
        if by_compatibility:
            # sorted() is stable: equal scores keep the featured/newest order
            scored = sorted(
                scored,
                key=lambda pair: pair[1].score if pair[1] is not None else 0,
                reverse=True,
            )
            scored = scored[filters.offset:filters.offset + filters.limit]

        return BuildListResponse(
            builds=[to_build_response(build, compat) for build, compat in scored],
            total_count=total_count,
            has_more=filters.offset + len(scored) < total_count,
        )

    async def seller_builds(self, db: AsyncSession, seller_id: str) -> List[BuildResponse]:
        try:
            result = await db.execute(
                select(Build)
                .where(Build.seller_id == seller_id)
                .order_by(desc(Build.created_at))
            )
            builds = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing builds of %s: %s", seller_id, str(e))
            raise DatabaseError(context={"seller_id": seller_id})
        return [to_build_response(build) for build in builds]

    async def leaderboard(
        self,
        db: AsyncSession,
        game_type: Optional[GameType] = None,
        limit: int = 20,
    ) -> List[LeaderboardEntry]:
        """
        Top builds among active and sold listings.

        Ranking:
            sales DESC → average review DESC (unreviewed last)
            → view_count DESC → created_at DESC
        """
        sales_count = func.count(Purchase.id).label("sales_count")
        average = Build.rating_total * 1.0 / func.nullif(Build.review_count, 0)
        query = (
            select(Build, sales_count)
            .outerjoin(Purchase, Purchase.build_id == Build.id)
            .where(Build.status.in_(VISIBLE_STATUSES))
        )
        if game_type is not None:
            query = query.where(Build.game_type == game_type.value)
        query = (
            query.group_by(Build.id)
            .order_by(
                desc(sales_count),
                average.is_(None),
                desc(average),
                desc(Build.view_count),
                desc(Build.created_at),
            )
            .limit(limit)
        )

        try:
            rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.error("Database error building the leaderboard: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load the leaderboard. Please try again.",
                context={"game_type": game_type.value if game_type else None},
            )

        return [
            LeaderboardEntry(
                rank=rank,
                id=build.id,
                title=build.title,
                game_type=build.game_type,
                position=build.position,
                archetype=build.archetype,
                seller_id=build.seller_id,
                seller_name=build.seller_name,
                price_cents=build.price_cents,
                status=build.status,
                overall_rating=build.overall_rating,
                performance=build.performance,
                view_count=build.view_count,
                sales_count=int(count or 0),
                review_count=build.review_count or 0,
                avg_rating=build.avg_rating,
            )
            for rank, (build, count) in enumerate(rows, start=1)
        ]

    async def delete_build(
        self, db: AsyncSession, build_id: UUID, seller_id: str
    ) -> ServiceResult[None]:
        """Sellers may withdraw their own unsold listings."""
        build = await self._fetch(db, build_id)
        if build is None:
            return ServiceResult.not_found("build", build_id)
        if build.seller_id != seller_id:
            return ServiceResult.failure(
                ErrorKind.FORBIDDEN, "Only the seller can delete this build"
            )
        if build.status == BuildStatus.SOLD.value:
            return ServiceResult.failure(
                ErrorKind.CONFLICT,
                "Sold builds can't be deleted",
                {"status": build.status},
            )
        try:
            await db.delete(build)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting build %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})
        logger.info("Build %s deleted by seller %s", build_id, seller_id)
        return ServiceResult.success(None)

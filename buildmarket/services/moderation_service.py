"""
BuildMarket Backend: Moderation Service
========================================

What:  Review queue, approve/reject, featuring, and buyer flags.
Who:   /api/admin routes (gated by X-Admin-Key) and the public flag route.

Status transitions:
    pending → active     approve
    pending → rejected   reject
    active  → sold       purchase (PurchaseService)
Anything else is a CONFLICT.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import asc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.exceptions import DatabaseError
from buildmarket.models.build import Build, BuildFlag, utcnow
from buildmarket.schemas.build import (
    BuildResponse,
    BuildStatus,
    FlagCreate,
    FlagResponse,
)
from buildmarket.services.build_service import VISIBLE_STATUSES, to_build_response
from buildmarket.services.result import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)


class ModerationService:

    async def _get(self, db: AsyncSession, model, object_id: UUID):
        try:
            return await db.get(model, object_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching %s %s: %s", model.__name__, object_id, str(e))
            raise DatabaseError(context={"id": str(object_id)})

    async def _flush(self, db: AsyncSession, build_id: UUID) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating build %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})

    async def list_builds(
        self, db: AsyncSession, status: Optional[BuildStatus] = BuildStatus.PENDING
    ) -> List[BuildResponse]:
        """Review queue, oldest first so nothing waits forever."""
        query = select(Build).order_by(asc(Build.created_at))
        if status is not None:
            query = query.where(Build.status == status.value)
        try:
            result = await db.execute(query)
            builds = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing builds for review: %s", str(e))
            raise DatabaseError(context={"status": status.value if status else None})
        return [to_build_response(build) for build in builds]

    async def _transition(
        self,
        db: AsyncSession,
        build_id: UUID,
        from_status: BuildStatus,
        to_status: BuildStatus,
    ) -> ServiceResult[BuildResponse]:
        build = await self._get(db, Build, build_id)
        if build is None:
            return ServiceResult.not_found("build", build_id)
        if build.status != from_status.value:
            return ServiceResult.failure(
                ErrorKind.CONFLICT,
                f"Only {from_status.value} builds can become {to_status.value}",
                {"status": build.status},
            )
        build.status = to_status.value
        build.updated_at = utcnow()
        await self._flush(db, build_id)
        logger.info("Build %s moved %s → %s", build_id, from_status.value, to_status.value)
        return ServiceResult.success(to_build_response(build))

    async def approve(self, db: AsyncSession, build_id: UUID) -> ServiceResult[BuildResponse]:
        return await self._transition(db, build_id, BuildStatus.PENDING, BuildStatus.ACTIVE)

    async def reject(self, db: AsyncSession, build_id: UUID) -> ServiceResult[BuildResponse]:
        return await self._transition(db, build_id, BuildStatus.PENDING, BuildStatus.REJECTED)

    async def set_featured(
        self, db: AsyncSession, build_id: UUID, featured: bool
    ) -> ServiceResult[BuildResponse]:
        """Featured builds lead the `newest` feed. Only active builds qualify."""
        build = await self._get(db, Build, build_id)
        if build is None:
            return ServiceResult.not_found("build", build_id)
        if featured and build.status != BuildStatus.ACTIVE.value:
            return ServiceResult.failure(
                ErrorKind.CONFLICT,
                "Only active builds can be featured",
                {"status": build.status},
            )
        build.featured = featured
        build.updated_at = utcnow()
        await self._flush(db, build_id)
        return ServiceResult.success(to_build_response(build))

    async def flag(
        self, db: AsyncSession, build_id: UUID, payload: FlagCreate
    ) -> ServiceResult[FlagResponse]:
        build = await self._get(db, Build, build_id)
        if build is None or build.status not in VISIBLE_STATUSES:
            return ServiceResult.not_found("build", build_id)

        flag = BuildFlag(
            build_id=build.id,
            reporter_id=payload.reporter_id,
            reason=payload.reason.strip(),
        )
        try:
            db.add(flag)
            await db.flush()
            await db.refresh(flag)
        except SQLAlchemyError as e:
            logger.error("Database error flagging build %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})
        logger.info("Build %s flagged by %s", build_id, payload.reporter_id)
        return ServiceResult.success(FlagResponse.model_validate(flag))

    async def list_flags(self, db: AsyncSession, include_resolved: bool = False) -> List[FlagResponse]:
        query = select(BuildFlag).order_by(asc(BuildFlag.created_at))
        if not include_resolved:
            query = query.where(BuildFlag.resolved.is_(False))
        try:
            result = await db.execute(query)
            flags = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing flags: %s", str(e))
            raise DatabaseError()
        return [FlagResponse.model_validate(flag) for flag in flags]

    async def resolve_flag(self, db: AsyncSession, flag_id: UUID) -> ServiceResult[FlagResponse]:
        flag = await self._get(db, BuildFlag, flag_id)
        if flag is None:
            return ServiceResult.not_found("flag", flag_id)
        if flag.resolved:
            return ServiceResult.failure(ErrorKind.CONFLICT, "Flag is already resolved")
        flag.resolved = True
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error resolving flag %s: %s", flag_id, str(e))
            raise DatabaseError(context={"flag_id": str(flag_id)})
        return ServiceResult.success(FlagResponse.model_validate(flag))

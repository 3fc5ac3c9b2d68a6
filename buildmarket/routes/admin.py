"""
BuildMarket Backend: Moderation Routes
=======================================

What:  Review queue, approve/reject/feature, and flag triage.
Who:   Internal moderation tooling. Every route requires X-Admin-Key.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from buildmarket.database import get_db_session
from buildmarket.routes.deps import get_moderation_service, require_admin, unwrap
from buildmarket.schemas.build import BuildResponse, BuildStatus, FeatureUpdate, FlagResponse
from buildmarket.schemas.common import ErrorResponse
from buildmarket.services.moderation_service import ModerationService

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={403: {"description": "Missing or wrong X-Admin-Key", "model": ErrorResponse}},
)

_not_found = {404: {"description": "Not found", "model": ErrorResponse}}
_conflict = {409: {"description": "Wrong status for this action", "model": ErrorResponse}}


@router.get("/builds", response_model=List[BuildResponse], summary="Builds by status")
async def list_builds(
    status: BuildStatus = Query(default=BuildStatus.PENDING),
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> List[BuildResponse]:
    return await moderation.list_builds(db, status)


@router.post(
    "/builds/{build_id}/approve",
    response_model=BuildResponse,
    responses={**_not_found, **_conflict},
    summary="Approve a pending build",
)
async def approve_build(
    build_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> BuildResponse:
    return unwrap(await moderation.approve(db, build_id))


@router.post(
    "/builds/{build_id}/reject",
    response_model=BuildResponse,
    responses={**_not_found, **_conflict},
    summary="Reject a pending build",
)
async def reject_build(
    build_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> BuildResponse:
    return unwrap(await moderation.reject(db, build_id))


@router.post(
    "/builds/{build_id}/feature",
    response_model=BuildResponse,
    responses={**_not_found, **_conflict},
    summary="Feature or unfeature an active build",
)
async def feature_build(
    build_id: UUID,
    payload: FeatureUpdate,
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> BuildResponse:
    return unwrap(await moderation.set_featured(db, build_id, payload.featured))


@router.get("/flags", response_model=List[FlagResponse], summary="Open flags")
async def list_flags(
    include_resolved: bool = Query(default=False),
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> List[FlagResponse]:
    return await moderation.list_flags(db, include_resolved=include_resolved)


@router.post(
    "/flags/{flag_id}/resolve",
    response_model=FlagResponse,
    responses={**_not_found, **_conflict},
    summary="Resolve a flag",
)
async def resolve_flag(
    flag_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    moderation: ModerationService = Depends(get_moderation_service),
) -> FlagResponse:
    return unwrap(await moderation.resolve_flag(db, flag_id))

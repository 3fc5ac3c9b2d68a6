"""
BuildMarket Backend: Playstyle & Compatibility Routes
======================================================

What:  The onboarding dimension catalog and ad hoc compatibility scoring.
Who:   The mobile onboarding flow (sliders) and the "what if" comparison
       screen, which scores two raw vectors without saving anything.
"""

from fastapi import APIRouter, Response

from buildmarket.schemas.common import ErrorResponse
from buildmarket.schemas.compatibility import (
    CompatibilityRequest,
    CompatibilityResult,
    PlaystyleDimensionsResponse,
)
from buildmarket.services.compatibility import PLAYSTYLE_DIMENSIONS, score_compatibility

router = APIRouter(prefix="/api", tags=["Compatibility"])


@router.get(
    "/playstyle/dimensions",
    response_model=PlaystyleDimensionsResponse,
    summary="Playstyle dimension catalog",
)
async def list_dimensions(response: Response) -> PlaystyleDimensionsResponse:
    # Static catalog; safe for shared caches
    response.headers["Cache-Control"] = "public, max-age=86400"
    return PlaystyleDimensionsResponse(dimensions=list(PLAYSTYLE_DIMENSIONS))


@router.post(
    "/compatibility",
    response_model=CompatibilityResult,
    responses={422: {"description": "Component outside 1-10", "model": ErrorResponse}},
    summary="Score two playstyle vectors",
    description=(
        "Scores a buyer vector against a build vector. Missing vectors or "
        "vectors that are not 8 long return the neutral fallback score."
    ),
)
async def score_vectors(payload: CompatibilityRequest) -> CompatibilityResult:
    return score_compatibility(payload.buyer_vector, payload.build_vector, payload.shooting)

"""
BuildMarket Backend: Compatibility Schemas
===========================================

What:  Pydantic models for playstyle vectors, the scorer's result, and the
       ad hoc scoring endpoint.
Why:   The result is embedded in build list/detail responses and must keep
       the client's camelCase key for the win-boost field.
"""

from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Exactly 8 integers in [1, 10], one per dimension in catalog order
PlaystyleVector = Annotated[
    List[Annotated[int, Field(ge=1, le=10)]],
    Field(min_length=8, max_length=8, description="8 playstyle ratings, each 1-10"),
]


class CompatibilityResult(BaseModel):
    """
    Buyer/build playstyle match.

    Serialized as {score, label, strengths, weaknesses, predictedWinBoost}.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: int = Field(description="Similarity 0-100")
    label: str = Field(description="Perfect/Great/Good/Moderate/Poor Match")
    strengths: List[str] = Field(default_factory=list, max_length=3)
    weaknesses: List[str] = Field(default_factory=list, max_length=2)
    predicted_win_boost: int = Field(
        ge=-15,
        le=30,
        alias="predictedWinBoost",
        description="Heuristic win-rate change in percentage points",
    )


class CompatibilityRequest(BaseModel):
    """
    Raw vectors for POST /api/compatibility.

    Length is deliberately unconstrained: a missing or short vector scores
    as the neutral fallback rather than failing validation.
    """

    buyer_vector: Optional[List[Annotated[int, Field(ge=1, le=10)]]] = None
    build_vector: Optional[List[Annotated[int, Field(ge=1, le=10)]]] = None
    shooting: Optional[float] = Field(default=None, ge=0, le=100)


class PlaystyleDimension(BaseModel):
    """One onboarding slider: its key, position, end-point labels and question."""

    key: str
    index: int
    low: str
    high: str
    question: str


class PlaystyleDimensionsResponse(BaseModel):
    dimensions: List[PlaystyleDimension]

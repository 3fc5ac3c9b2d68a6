"""
BuildMarket Backend: Build Listing Schemas
===========================================

What:  Request/response models for listings, purchases, reviews, flags,
       moderation and the leaderboard.
Why:   Nested payloads (attributes, performance, Build DNA) are explicit,
       typed records rather than open-ended dicts, so shape drift is caught
       at the API boundary.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from buildmarket.schemas.compatibility import CompatibilityResult, PlaystyleVector


class GameType(str, Enum):
    BASKETBALL = "basketball"
    FOOTBALL = "football"
    HOCKEY = "hockey"


class BuildStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    SOLD = "sold"


class BuildSort(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING = "rating"
    COMPATIBILITY = "compatibility"


Rating = Annotated[int, Field(ge=25, le=99)]


class PerformanceSnapshot(BaseModel):
    """
    Build performance card, each 0-100.

    Only `shooting` feeds the compatibility win-boost estimate; the rest
    is descriptive.
    """

    speed: Optional[float] = Field(default=None, ge=0, le=100)
    shooting: Optional[float] = Field(default=None, ge=0, le=100)
    defense: Optional[float] = Field(default=None, ge=0, le=100)
    playmaking: Optional[float] = Field(default=None, ge=0, le=100)
    athleticism: Optional[float] = Field(default=None, ge=0, le=100)
    patch_version: Optional[str] = Field(default=None, max_length=20)


class BuildAttributes(BaseModel):
    """The 17 in-game ratings of a basketball build (25-99 each)."""

    speed: Rating
    acceleration: Rating
    vertical_leap: Rating
    strength: Rating
    stamina: Rating
    ball_handling: Rating
    pass_accuracy: Rating
    three_pointer: Rating
    mid_range: Rating
    layup: Rating
    dunk_power: Rating
    interior_defense: Rating
    perimeter_defense: Rating
    steal: Rating
    block: Rating
    offensive_rebound: Rating
    defensive_rebound: Rating


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class BuildCreate(BaseModel):
    seller_id: str = Field(min_length=1, max_length=64)
    seller_name: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=120)
    game_type: GameType
    position: str = Field(min_length=1, max_length=20)
    archetype: str = Field(min_length=1, max_length=60)
    description: Optional[str] = Field(default=None, max_length=2000)
    price_cents: int = Field(ge=100, le=1_000_000, description="Price in cents")
    import_code: Optional[str] = Field(default=None, max_length=4000)
    build_vector: Optional[PlaystyleVector] = None
    performance: Optional[PerformanceSnapshot] = None
    attributes: Optional[BuildAttributes] = None
    height_in: Optional[int] = Field(default=None, ge=48, le=96)
    weight_lbs: Optional[int] = Field(default=None, ge=100, le=350)


class BuildFilters(BaseModel):
    """Query parameters for the marketplace feed."""

    game_type: Optional[GameType] = None
    position: Optional[str] = None
    max_price_cents: Optional[int] = Field(default=None, ge=0)
    sort: BuildSort = BuildSort.NEWEST
    limit: int = Field(default=20, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class PurchaseCreate(BaseModel):
    buyer_id: str = Field(min_length=1, max_length=64)
    buyer_name: str = Field(min_length=1, max_length=64)


class FlagCreate(BaseModel):
    reporter_id: str = Field(min_length=1, max_length=64)
    reason: str = Field(min_length=3, max_length=1000)


class FeatureUpdate(BaseModel):
    featured: bool


class ReviewCreate(BaseModel):
    buyer_id: str = Field(min_length=1, max_length=64)
    rating: int = Field(ge=1, le=5, description="1-5 stars")
    comment: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("comment")
    @classmethod
    def blank_comment_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    build_id: uuid.UUID
    purchase_id: uuid.UUID
    buyer_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class BuildResponse(BaseModel):
    """
    Public view of a listing. Never includes the import code.

    `compatibility` is present when the request identified a buyer (or on
    every list item, when the caller asked for it). `reviews` is filled on
    the detail view only; lists carry just `avg_rating` and `review_count`.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: str
    seller_name: str
    title: str
    game_type: GameType
    position: str
    archetype: str
    description: Optional[str] = None
    price_cents: int
    build_vector: Optional[List[int]] = None
    performance: Optional[PerformanceSnapshot] = None
    attributes: Optional[BuildAttributes] = None
    overall_rating: Optional[int] = None
    height_in: Optional[int] = None
    weight_lbs: Optional[int] = None
    status: BuildStatus
    featured: bool
    view_count: int
    review_count: int = 0
    avg_rating: Optional[float] = None
    created_at: datetime
    updated_at: datetime
    compatibility: Optional[CompatibilityResult] = None
    reviews: Optional[List[ReviewResponse]] = None


class BuildListResponse(BaseModel):
    builds: List[BuildResponse]
    total_count: int
    has_more: bool


class LeaderboardEntry(BaseModel):
    """One ranked build on the leaderboard. `rank` starts at 1."""

    rank: int
    id: uuid.UUID
    title: str
    game_type: GameType
    position: str
    archetype: str
    seller_id: str
    seller_name: str
    price_cents: int
    status: BuildStatus
    overall_rating: Optional[int] = None
    performance: Optional[PerformanceSnapshot] = None
    view_count: int
    sales_count: int
    review_count: int
    avg_rating: Optional[float] = None


class PurchaseResponse(BaseModel):
    """A completed purchase. The import code is visible to the buyer only here."""

    id: uuid.UUID
    build_id: uuid.UUID
    buyer_id: str
    buyer_name: str
    seller_id: str
    amount_cents: int
    import_code: Optional[str] = None
    build_title: str
    created_at: datetime


class EarningsResponse(BaseModel):
    seller_id: str
    sales_count: int
    total_cents: int


class FlagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    build_id: uuid.UUID
    reporter_id: str
    reason: str
    resolved: bool
    created_at: datetime

"""
BuildMarket Backend: Build Listing Models
==========================================

What:  ORM models for the `builds` and `build_flags` tables.
How:   Portable column types (Uuid, DateTime, JSON with a JSONB variant) so
       the same metadata runs on PostgreSQL in production and SQLite in tests.

Table Design Rationale:
    - build_vector / performance / attributes are JSON columns, but only
      ever written from validated Pydantic models (schemas/build.py).
    - price_cents is an integer: no float money.
    - import_code is returned only to the buyer after purchase.
    - status moves pending → active → sold, or pending → rejected.
    - review_count / rating_total are incremented in SQL, never read-modify-
      written, so concurrent reviews (and view_count bumps) aren't lost.

    Index on (status, created_at DESC):
        The marketplace feed is "active builds, newest first".
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from buildmarket.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Build(Base):
    """
    A seller's listed build template.

    Query Patterns:
        - Feed: WHERE status='active' ORDER BY featured DESC, created_at DESC
        - Moderation queue: WHERE status='pending' ORDER BY created_at
        - Seller dashboard: WHERE seller_id = :seller_id
    """

    __tablename__ = "builds"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Opaque identity issued by the external auth provider
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    seller_name: Mapped[str] = mapped_column(String(64), nullable=False)

    title: Mapped[str] = mapped_column(String(120), nullable=False)
    game_type: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[str] = mapped_column(String(20), nullable=False)
    archetype: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    import_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "Build DNA": 8 ints 1-10, same dimension order as buyer profiles
    build_vector: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    performance: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    attributes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    overall_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    height_in: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    weight_lbs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Running totals kept by ReviewService; avg_rating is derived from them
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_builds_status_created_at", "status", created_at.desc()),
    )

    @property
    def shooting(self) -> Optional[Any]:
        """Shooting performance used by the compatibility win-boost estimate."""
        return (self.performance or {}).get("shooting")

    @property
    def avg_rating(self) -> Optional[float]:
        """Mean buyer review (1-5) to one decimal, half-up; None until reviewed."""
        if not self.review_count:
            return None
        return math.floor(self.rating_total * 10 / self.review_count + 0.5) / 10

    def __repr__(self) -> str:
        return f"<Build(id={self.id}, title='{self.title}', status='{self.status}')>"


class BuildFlag(Base):
    """A buyer's report about a listing, resolved by a moderator."""

    __tablename__ = "build_flags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    build_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("builds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

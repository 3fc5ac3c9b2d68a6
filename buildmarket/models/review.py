"""
BuildMarket Backend: Review Model
==================================

What:  ORM model for `reviews`, a buyer's 1-5 star rating of a build they own.
Why:   Reviews hang off a purchase: only the buyer who paid can rate, and
       only once per build (uq_reviews_build_buyer backs that up under races).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from buildmarket.database import Base
from buildmarket.models.build import utcnow


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    build_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("builds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purchase_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchases.id"), nullable=False
    )
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("build_id", "buyer_id", name="uq_reviews_build_buyer"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, build_id={self.build_id}, rating={self.rating})>"

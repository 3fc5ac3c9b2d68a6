"""
BuildMarket Backend: Buyer Profile Model
=========================================

What:  ORM model for `buyer_profiles`, the playstyle captured at onboarding.
Why:   Build list/detail endpoints score every listing against this vector.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from buildmarket.database import Base
from buildmarket.models.build import JSONType, utcnow


class BuyerProfile(Base):
    __tablename__ = "buyer_profiles"

    buyer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    preferred_sport: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # 8 ints 1-10 in PLAYSTYLE_KEYS order; editable after onboarding
    playstyle_vector: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<BuyerProfile(buyer_id='{self.buyer_id}')>"

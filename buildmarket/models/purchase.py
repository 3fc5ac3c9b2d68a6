"""
BuildMarket Backend: Purchase Model
====================================

What:  ORM model for `purchases`, one row per sold build.
Why:   Buyers re-open their import codes from here; sellers' earnings are
       summed from here. Payment capture happens with the external processor
       before this row is written.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buildmarket.database import Base
from buildmarket.models.build import Build, utcnow


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    build_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("builds.id"), nullable=False, unique=True
    )
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    buyer_name: Mapped[str] = mapped_column(String(64), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Loaded explicitly with selectinload(); async sessions can't lazy-load
    build: Mapped[Build] = relationship(Build, lazy="raise")

    def __repr__(self) -> str:
        return f"<Purchase(id={self.id}, build_id={self.build_id}, buyer='{self.buyer_id}')>"

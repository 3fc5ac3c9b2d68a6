"""
BuildMarket Backend: Purchase Service
======================================

What:  Records a sale once payment has cleared and exposes purchase history.
Why:   Builds are single-sale templates: the first successful purchase marks
       the listing `sold` and reveals its import code to that buyer only.
Who:   POST /api/builds/{id}/purchase, /api/users/{id}/purchases|earnings.

Payment capture itself belongs to the external processor; this service is
called after the processor confirms the charge.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildmarket.exceptions import DatabaseError
from buildmarket.models.build import Build, utcnow
from buildmarket.models.purchase import Purchase
from buildmarket.schemas.build import (
    BuildStatus,
    EarningsResponse,
    PurchaseCreate,
    PurchaseResponse,
)
from buildmarket.services.result import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)


def to_purchase_response(purchase: Purchase, build: Build) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        build_id=purchase.build_id,
        buyer_id=purchase.buyer_id,
        buyer_name=purchase.buyer_name,
        seller_id=purchase.seller_id,
        amount_cents=purchase.amount_cents,
        import_code=build.import_code,
        build_title=build.title,
        created_at=purchase.created_at,
    )


class PurchaseService:

    async def purchase(
        self,
        db: AsyncSession,
        build_id: UUID,
        payload: PurchaseCreate,
    ) -> ServiceResult[PurchaseResponse]:
        """
        Sell `build_id` to the buyer.

        Outcomes:
            NOT_FOUND  build doesn't exist
            FORBIDDEN  buyer is the seller
            CONFLICT   build isn't active (sold, pending review, rejected),
                       or another purchase won the race (unique build_id)
        """
        try:
            result = await db.execute(
                select(Build).where(Build.id == build_id).with_for_update()
            )
            build = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error locking build %s: %s", build_id, str(e))
            raise DatabaseError(context={"build_id": str(build_id)})

        if build is None:
            return ServiceResult.not_found("build", build_id)
        if build.seller_id == payload.buyer_id:
            return ServiceResult.failure(
                ErrorKind.FORBIDDEN, "Sellers can't buy their own builds"
            )
        if build.status != BuildStatus.ACTIVE.value:
            message = (
                "Build has already been sold"
                if build.status == BuildStatus.SOLD.value
                else "Build is not available for purchase"
            )
            return ServiceResult.failure(ErrorKind.CONFLICT, message, {"status": build.status})

        purchase = Purchase(
            build_id=build.id,
            buyer_id=payload.buyer_id,
            buyer_name=payload.buyer_name,
            seller_id=build.seller_id,
            amount_cents=build.price_cents,
        )
        build.status = BuildStatus.SOLD.value
        build.updated_at = utcnow()
        try:
            db.add(purchase)
            await db.flush()
        except IntegrityError:
            await db.rollback()
            return ServiceResult.failure(
                ErrorKind.CONFLICT, "Build has already been sold", {"status": "sold"}
            )
        except SQLAlchemyError as e:
            logger.error("Database error recording purchase of %s: %s", build_id, str(e))
            raise DatabaseError(
                message="Could not complete the purchase. You have not been charged.",
                context={"build_id": str(build_id)},
            )

        logger.info(
            "Build %s sold to %s for %d cents", build.id, payload.buyer_id, build.price_cents
        )
        return ServiceResult.success(to_purchase_response(purchase, build))

    async def buyer_purchases(self, db: AsyncSession, buyer_id: str) -> List[PurchaseResponse]:
        try:
            result = await db.execute(
                select(Purchase)
                .options(selectinload(Purchase.build))
                .where(Purchase.buyer_id == buyer_id)
                .order_by(desc(Purchase.created_at))
            )
            purchases = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing purchases of %s: %s", buyer_id, str(e))
            raise DatabaseError(context={"buyer_id": buyer_id})
        return [to_purchase_response(p, p.build) for p in purchases]

    async def seller_earnings(self, db: AsyncSession, seller_id: str) -> EarningsResponse:
        try:
            result = await db.execute(
                select(func.count(Purchase.id), func.coalesce(func.sum(Purchase.amount_cents), 0))
                .where(Purchase.seller_id == seller_id)
            )
            sales_count, total_cents = result.one()
        except SQLAlchemyError as e:
            logger.error("Database error summing earnings of %s: %s", seller_id, str(e))
            raise DatabaseError(context={"seller_id": seller_id})
        return EarningsResponse(
            seller_id=seller_id,
            sales_count=int(sales_count or 0),
            total_cents=int(total_cents or 0),
        )

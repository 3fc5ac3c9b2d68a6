"""
BuildMarket Backend: Route Dependencies
========================================

What:  FastAPI dependencies shared by the routers.
How:   Services are constructed once by create_app() and stored on app.state;
       these functions hand them to handlers. `unwrap()` converts a failed
       ServiceResult into the exception the global handlers expect.
"""

from typing import TypeVar

from fastapi import Header, Request

from buildmarket.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from buildmarket.services.build_service import BuildService
from buildmarket.services.moderation_service import ModerationService
from buildmarket.services.profile_service import ProfileService
from buildmarket.services.purchase_service import PurchaseService
from buildmarket.services.result import ErrorKind, ServiceResult
from buildmarket.services.review_service import ReviewService

T = TypeVar("T")


def get_build_service(request: Request) -> BuildService:
    return request.app.state.build_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def get_purchase_service(request: Request) -> PurchaseService:
    return request.app.state.purchase_service


def get_moderation_service(request: Request) -> ModerationService:
    return request.app.state.moderation_service


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service


async def require_admin(
    request: Request,
    x_admin_key: str | None = Header(default=None),
) -> None:
    """
    Gate for /api/admin routes.

    An unset ADMIN_API_KEY disables the routes entirely rather than letting
    an empty header through.
    """
    expected = request.app.state.settings.admin_api_key
    if not expected or x_admin_key != expected:
        raise ForbiddenError(message="A valid X-Admin-Key header is required")


def unwrap(result: ServiceResult[T]) -> T:
    """Return the value of a successful result or raise the matching error."""
    if result.ok:
        return result.value

    context = dict(result.context or {})
    if result.error == ErrorKind.NOT_FOUND:
        raise NotFoundError(
            resource=context.pop("resource", "resource"),
            resource_id=context.pop("resource_id", None),
            context=context,
        )
    if result.error == ErrorKind.FORBIDDEN:
        raise ForbiddenError(message=result.message or ForbiddenError().message, context=context)
    if result.error == ErrorKind.CONFLICT:
        raise ConflictError(message=result.message or ConflictError().message, context=context)
    raise ValidationError(message=result.message or "Validation failed", context=context)

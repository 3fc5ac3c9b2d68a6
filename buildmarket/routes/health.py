"""
BuildMarket Backend: Health Check Route
========================================

What:  Liveness/readiness check for Docker and load balancers.
How:   SELECT 1 against the app's database. The service is only "healthy"
       when it can serve the marketplace end-to-end, so an unreachable
       database answers 503.
"""

import time

from fastapi import APIRouter, Request, Response

from buildmarket import __version__
from buildmarket.database import get_database
from buildmarket.schemas.common import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    database = get_database(request)
    connected = database is not None and await database.ping()
    if not connected:
        response.status_code = 503

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )

"""
Health check endpoint.

Reports "degraded" rather than failing when the booking store does not
answer, so load balancers can tell a live process from a usable one.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from app import db
from app.config import ENVIRONMENT
from app.models import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])

VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health() -> HealthResponse:
    database = await db.ping()
    return HealthResponse(
        status="ok" if database else "degraded",
        version=VERSION,
        environment=ENVIRONMENT,
        database=database,
        timestamp=datetime.now(timezone.utc),
    )

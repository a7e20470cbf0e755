"""
Strike status endpoint.
"""

from fastapi import APIRouter

from app.dependencies import Engine
from app.models import StrikeStatus

router = APIRouter(prefix="/api/facilities/{facility_id}/users", tags=["strikes"])


@router.get(
    "/{user_id}/strikes",
    response_model=StrikeStatus,
    operation_id="getStrikeStatus",
    summary="Active strikes and lockout status for an account",
)
async def get_strike_status(facility_id: str, user_id: str, engine: Engine) -> StrikeStatus:
    return await engine.strike_status(facility_id, user_id)

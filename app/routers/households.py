"""
Household membership endpoint.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.dependencies import Engine
from app.models import HouseholdAssignment, HouseholdJoinRequest
from app.rate_limit import ADMIN, limiter

router = APIRouter(prefix="/api/facilities/{facility_id}/households", tags=["households"])


@router.post(
    "/members",
    response_model=HouseholdAssignment,
    operation_id="joinHousehold",
    summary="Attach an account to the household at its registered address",
    responses={422: {"model": HouseholdAssignment, "description": "Household is full"}},
)
@limiter.limit(ADMIN)
async def join_household(
    request: Request,
    facility_id: str,
    body: HouseholdJoinRequest,
    engine: Engine,
):
    assignment = await engine.assign_household(facility_id, body.user_id, body.address)
    code = status.HTTP_422_UNPROCESSABLE_ENTITY if assignment.violations else status.HTTP_200_OK
    return JSONResponse(status_code=code, content=assignment.model_dump(mode="json"))

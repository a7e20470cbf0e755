"""
Read-only decision endpoints: slot availability and rule evaluation.

Neither endpoint writes anything; the booking endpoints re-check both
before confirming.
"""

from fastapi import APIRouter, Request

from app.dependencies import Engine
from app.models import AvailabilityRequest, AvailabilityResult, BookingRequest, EvaluationResult
from app.rate_limit import DEFAULT, limiter

router = APIRouter(prefix="/api/facilities/{facility_id}", tags=["decisions"])


@router.post(
    "/availability",
    response_model=AvailabilityResult,
    operation_id="checkAvailability",
    summary="Check whether a court is free for a time range",
)
@limiter.limit(DEFAULT)
async def check_availability(
    request: Request,
    facility_id: str,
    body: AvailabilityRequest,
    engine: Engine,
) -> AvailabilityResult:
    return await engine.check_availability(
        body.court_id,
        facility_id,
        body.booking_date,
        body.start_time,
        body.duration_minutes,
    )


@router.post(
    "/evaluations",
    response_model=EvaluationResult,
    operation_id="evaluateRequest",
    summary="Evaluate a booking request against the facility's rules",
)
@limiter.limit(DEFAULT)
async def evaluate_request(
    request: Request,
    facility_id: str,
    body: BookingRequest,
    engine: Engine,
) -> EvaluationResult:
    return await engine.evaluate_request(body, facility_id)

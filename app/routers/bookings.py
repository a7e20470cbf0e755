"""
Booking workflow endpoints: create, cancel, no-show.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.dependencies import Engine
from app.models import Booking, BookingOutcome, BookingRequest, CancellationResult, CancelRequest
from app.rate_limit import BOOKING, limiter

router = APIRouter(prefix="/api/facilities/{facility_id}/bookings", tags=["bookings"])

_OUTCOME_STATUS = {
    "confirmed": status.HTTP_201_CREATED,
    "conflict": status.HTTP_409_CONFLICT,
    "denied": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


@router.post(
    "",
    response_model=BookingOutcome,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBooking",
    summary="Check availability, evaluate rules, and confirm a booking",
    responses={
        409: {"model": BookingOutcome, "description": "Slots already taken"},
        422: {"model": BookingOutcome, "description": "Rule violations"},
    },
)
@limiter.limit(BOOKING)
async def create_booking(
    request: Request,
    facility_id: str,
    body: BookingRequest,
    engine: Engine,
):
    outcome = await engine.create_booking(body, facility_id)
    return JSONResponse(
        status_code=_OUTCOME_STATUS[outcome.status],
        content=outcome.model_dump(mode="json"),
    )


@router.post(
    "/{booking_id}/cancel",
    response_model=CancellationResult,
    operation_id="cancelBooking",
    summary="Cancel a booking (or preview the cost with dry_run)",
)
@limiter.limit(BOOKING)
async def cancel_booking(
    request: Request,
    facility_id: str,
    booking_id: str,
    engine: Engine,
    body: CancelRequest | None = None,
) -> CancellationResult:
    body = body or CancelRequest()
    if body.dry_run:
        return await engine.preview_cancellation(facility_id, booking_id, is_admin=body.is_admin)
    return await engine.cancel_booking(facility_id, booking_id, is_admin=body.is_admin)


@router.post(
    "/{booking_id}/no-show",
    response_model=Booking,
    operation_id="recordNoShow",
    summary="Mark a booking as a no-show and record a strike",
)
@limiter.limit(BOOKING)
async def record_no_show(
    request: Request,
    facility_id: str,
    booking_id: str,
    engine: Engine,
) -> Booking:
    return await engine.record_no_show(facility_id, booking_id)

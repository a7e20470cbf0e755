"""
Court blackout endpoints.

Blackouts are read fresh on every evaluation (CRT-006), so changes here
take effect without touching the rule cache.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from app import db
from app.models import Blackout
from app.rate_limit import ADMIN, limiter

router = APIRouter(prefix="/api/facilities/{facility_id}/blackouts", tags=["blackouts"])


@router.get(
    "",
    response_model=List[Blackout],
    operation_id="listBlackouts",
    summary="List a facility's blackouts, optionally only those touching one date",
)
async def list_blackouts(
    facility_id: str,
    booking_date: Optional[date] = Query(None, description="Only blackouts that may touch this date"),
) -> List[Blackout]:
    return await db.list_blackouts(facility_id, booking_date)


@router.post(
    "",
    response_model=Blackout,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBlackout",
    summary="Block a court, or the whole facility, for a period",
)
@limiter.limit(ADMIN)
async def create_blackout(
    request: Request,
    facility_id: str,
    body: Blackout,
) -> Blackout:
    if body.court_id is not None:
        court = await db.get_court(body.court_id)
        if court is None or court.facility_id != facility_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Court {body.court_id} not found at facility {facility_id}",
            )
    return await db.add_blackout(body.model_copy(update={"id": None, "facility_id": facility_id}))


@router.delete(
    "/{blackout_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteBlackout",
    summary="Remove a blackout",
)
@limiter.limit(ADMIN)
async def delete_blackout(request: Request, facility_id: str, blackout_id: str) -> Response:
    if not await db.delete_blackout(facility_id, blackout_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blackout {blackout_id} not found at facility {facility_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

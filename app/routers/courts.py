"""
Court endpoints.

Courts are facility configuration: the split-court topology the conflict
resolver reads comes from here.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app import db
from app.dependencies import PaginationParams, paginate
from app.models import Court, CourtListResponse
from app.rate_limit import ADMIN, limiter

router = APIRouter(prefix="/api/facilities/{facility_id}/courts", tags=["courts"])


@router.get(
    "",
    response_model=CourtListResponse,
    operation_id="listCourts",
    summary="List a facility's courts",
)
async def list_courts(
    facility_id: str,
    pagination: PaginationParams = Depends(PaginationParams),
) -> CourtListResponse:
    courts = await db.list_courts(facility_id)
    return paginate(courts, pagination, CourtListResponse)


@router.get(
    "/{court_id}",
    response_model=Court,
    operation_id="getCourt",
    summary="Get a court with its split-court relatives",
)
async def get_court(facility_id: str, court_id: str) -> Court:
    court = await db.get_court(court_id)
    if court is None or court.facility_id != facility_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Court {court_id} not found at facility {facility_id}",
        )
    return court


@router.put(
    "/{court_id}",
    response_model=Court,
    operation_id="putCourt",
    summary="Create or replace a court",
)
@limiter.limit(ADMIN)
async def put_court(
    request: Request,
    facility_id: str,
    court_id: str,
    body: Court,
) -> Court:
    court = body.model_copy(update={"id": court_id, "facility_id": facility_id})
    return await db.upsert_court(court)

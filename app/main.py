"""Main FastAPI application for the Court Booking engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import ENVIRONMENT
from app.db import close_db, init_db
from app.dependencies import init_engine
from app.errors import (
    BookingEngineError,
    EvaluationCanceled,
    EvaluationUnavailable,
    InputError,
    Retryable,
    UnknownBooking,
    UnknownCourt,
)
from app.models import Error
from app.rate_limit import limiter
from app.routers import (
    availability,
    blackouts,
    bookings,
    courts,
    health,
    households,
    rules,
    strikes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Court Booking API (%s)", ENVIRONMENT)
    await init_db()
    init_engine()
    yield
    await close_db()


app = FastAPI(
    title="Court Booking API",
    description="Eligibility and slot-conflict decisions for tennis and pickleball court bookings",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ── Error mapping ──────────────────────────────────────────────────────────


def _status_for(exc: BookingEngineError) -> int:
    if isinstance(exc, (UnknownCourt, UnknownBooking)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, InputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, Retryable):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (EvaluationUnavailable, EvaluationCanceled)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
    code = _status_for(exc)
    if code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = Error(
        error=exc.error,
        message=exc.message,
        details=exc.details or None,
        retryable=isinstance(exc, Retryable),
    )
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


# ── Routers ────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(blackouts.router)
app.include_router(courts.router)
app.include_router(households.router)
app.include_router(rules.router)
app.include_router(strikes.router)

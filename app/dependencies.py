import logging
from typing import Annotated

from fastapi import Depends, Query

from app.models import PaginationMeta
from app.services.clock import Clock
from app.services.engine import BookingEngine
from app.services.providers import DatabaseProvider

logger = logging.getLogger(__name__)


# ── Pagination ─────────────────────────────────────────────────────────────


class PaginationParams:
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
        page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def paginate(items: list, pagination: PaginationParams, response_cls: type):
    total = len(items)
    start = pagination.offset
    end = start + pagination.page_size
    return response_cls(
        items=items[start:end],
        meta=PaginationMeta(
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total,
            total_pages=max(1, -(-total // pagination.page_size)),
        ),
    )


# ── Booking engine ─────────────────────────────────────────────────────────

_engine: BookingEngine | None = None


def init_engine(clock: Clock | None = None) -> BookingEngine:
    """Build the process-wide engine on top of the SQLite provider."""
    global _engine
    _engine = BookingEngine(DatabaseProvider(), clock=clock)
    logger.info("Booking engine initialized")
    return _engine


def get_engine() -> BookingEngine:
    if _engine is None:
        return init_engine()
    return _engine


Engine = Annotated[BookingEngine, Depends(get_engine)]

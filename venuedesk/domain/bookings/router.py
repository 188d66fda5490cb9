"""Booking router - FastAPI endpoints for booking operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...cache import RenderCache, bypasses_render_cache, get_or_render, get_render_cache
from ...statuses import BOOKING
from ...status_updates import get_status_update_timeout, handle_status_update
from .schemas import BookingResponse, BookingStatusUpdateRequest
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def get_booking_service() -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService()


@router.post("/update-status")
async def update_booking_status(
    request: Request,
    service: BookingService = Depends(get_booking_service),
    timeout: float = Depends(get_status_update_timeout),
):
    """Approve or reject a booking; see status_updates for the response contract"""
    return await handle_status_update(request, BOOKING, BookingStatusUpdateRequest, service, timeout)


@router.get("", response_model=list[BookingResponse])
def list_bookings(
    request: Request,
    status: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
    cache: RenderCache = Depends(get_render_cache),
):
    path = request.url.path + (f"?status={status}" if status else "")
    return get_or_render(
        cache,
        path,
        [BOOKING.plural],
        lambda: service.list_bookings(status),
        fresh=bypasses_render_cache(request.headers),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    request: Request,
    service: BookingService = Depends(get_booking_service),
    cache: RenderCache = Depends(get_render_cache),
):
    return get_or_render(
        cache,
        request.url.path,
        [BOOKING.plural, BOOKING.entity_tag(booking_id)],
        lambda: service.get_booking(booking_id),
        fresh=bypasses_render_cache(request.headers),
    )

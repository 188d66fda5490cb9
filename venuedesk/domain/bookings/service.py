"""Booking service - Business logic for booking reads and status changes"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from ...cache import RenderCache, render_cache
from ...database import SessionLocal
from ...exceptions import EntityNotFoundError
from ...statuses import BOOKING
from ...status_updates import StatusUpdateResult
from ...webhooks import WebhookNotifier, booking_notifier
from .repository import BookingRepository
from .schemas import BookingResponse

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        notifier: Optional[WebhookNotifier] = None,
        cache: Optional[RenderCache] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or booking_notifier()
        self.cache = cache or render_cache
        self.repo = BookingRepository()

    def list_bookings(self, status: Optional[str] = None) -> list[dict]:
        with self.session_factory() as db:
            bookings = self.repo.get_bookings(db, status)
            return [BookingResponse.model_validate(b).model_dump(mode="json") for b in bookings]

    def get_booking(self, booking_id: str) -> dict:
        with self.session_factory() as db:
            booking = self.repo.get_booking_by_id(db, booking_id)
            if not booking:
                raise EntityNotFoundError("Booking not found")
            return BookingResponse.model_validate(booking).model_dump(mode="json")

    def _apply_status(self, booking_id: str, status: str) -> Optional[dict]:
        """Blocking part of the update; returns None when the booking is missing"""
        with self.session_factory() as db:
            booking = self.repo.get_booking_by_id(db, booking_id)
            if not booking:
                return None
            previous = booking.status
            booking = self.repo.update_status(db, booking, status)
            return {
                "bookingId": booking.id,
                "status": booking.status,
                "previousStatus": previous,
                "customerName": booking.customer_name,
                "customerEmail": booking.customer_email,
                "facilityId": booking.facility_id,
                "updatedAt": booking.updated_at,
            }

    async def update_status(
        self, booking_id: str, status: str, previous_status: Optional[str] = None
    ) -> StatusUpdateResult:
        """Update the booking, drop its cached renders, then fire the webhook"""
        if not BOOKING.is_valid(status):
            logger.warning(f"⚠️ Rejected booking {booking_id} status '{status}': not a booking status")
            return StatusUpdateResult(success=False, message=f"Invalid booking status: {status}")

        event = await asyncio.to_thread(self._apply_status, booking_id, status)
        if event is None:
            logger.warning(f"⚠️ Booking {booking_id} not found")
            return StatusUpdateResult(success=False, message="Booking not found")

        if previous_status and previous_status != event["previousStatus"]:
            logger.warning(
                f"⚠️ Booking {booking_id}: client believed '{previous_status}', "
                f"store had '{event['previousStatus']}'"
            )
        logger.info(f"✅ Booking {booking_id} transitioned: {event['previousStatus']} → {status}")

        try:
            self.cache.invalidate_tag(BOOKING.plural)
            self.cache.invalidate_tag(BOOKING.entity_tag(booking_id))
        except Exception as e:
            logger.error(f"❌ Cache invalidation failed for booking {booking_id}: {e}")

        event["clientPreviousStatus"] = previous_status
        webhook_sent = await self.notifier.notify("booking.status_updated", event)

        return StatusUpdateResult(
            success=True,
            message=f"Booking status updated to {status}",
            webhook_sent=webhook_sent,
        )

"""Facility service - Business logic for facility reads and status changes"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from ...cache import RenderCache, render_cache
from ...database import SessionLocal
from ...exceptions import EntityNotFoundError
from ...statuses import FACILITY
from ...status_updates import StatusUpdateResult
from ...webhooks import WebhookNotifier, facility_notifier
from .repository import FacilityRepository
from .schemas import FacilityResponse

logger = logging.getLogger(__name__)


class FacilityService:
    """Service layer for facility business logic"""

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        notifier: Optional[WebhookNotifier] = None,
        cache: Optional[RenderCache] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or facility_notifier()
        self.cache = cache or render_cache
        self.repo = FacilityRepository()

    def list_facilities(self, status: Optional[str] = None) -> list[dict]:
        with self.session_factory() as db:
            facilities = self.repo.get_facilities(db, status)
            return [FacilityResponse.model_validate(f).model_dump(mode="json") for f in facilities]

    def get_facility(self, facility_id: str) -> dict:
        with self.session_factory() as db:
            facility = self.repo.get_facility_by_id(db, facility_id)
            if not facility:
                raise EntityNotFoundError("Facility not found")
            return FacilityResponse.model_validate(facility).model_dump(mode="json")

    def _apply_status(self, facility_id: str, status: str) -> Optional[dict]:
        with self.session_factory() as db:
            facility = self.repo.get_facility_by_id(db, facility_id)
            if not facility:
                return None
            previous = facility.status
            facility = self.repo.update_status(db, facility, status)
            return {
                "facilityId": facility.id,
                "status": facility.status,
                "previousStatus": previous,
                "name": facility.name,
                "ownerEmail": facility.owner_email,
                "updatedAt": facility.updated_at,
            }

    async def update_status(
        self, facility_id: str, status: str, previous_status: Optional[str] = None
    ) -> StatusUpdateResult:
        if not FACILITY.is_valid(status):
            logger.warning(f"⚠️ Rejected facility {facility_id} status '{status}': not a facility status")
            return StatusUpdateResult(success=False, message=f"Invalid facility status: {status}")

        event = await asyncio.to_thread(self._apply_status, facility_id, status)
        if event is None:
            logger.warning(f"⚠️ Facility {facility_id} not found")
            return StatusUpdateResult(success=False, message="Facility not found")

        if previous_status and previous_status != event["previousStatus"]:
            logger.warning(
                f"⚠️ Facility {facility_id}: client believed '{previous_status}', "
                f"store had '{event['previousStatus']}'"
            )
        logger.info(f"✅ Facility {facility_id} transitioned: {event['previousStatus']} → {status}")

        try:
            self.cache.invalidate_tag(FACILITY.plural)
            self.cache.invalidate_tag(FACILITY.entity_tag(facility_id))
        except Exception as e:
            logger.error(f"❌ Cache invalidation failed for facility {facility_id}: {e}")

        event["clientPreviousStatus"] = previous_status
        webhook_sent = await self.notifier.notify("facility.status_updated", event)

        return StatusUpdateResult(
            success=True,
            message=f"Facility status updated to {status}",
            webhook_sent=webhook_sent,
        )

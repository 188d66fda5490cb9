"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ...status_updates import StatusUpdateRequest


class BookingStatusUpdateRequest(StatusUpdateRequest):
    """Body of POST /api/bookings/update-status"""

    bookingId: Optional[str] = Field(None, validation_alias=AliasChoices("bookingId", "id"))

    @property
    def entity_id(self) -> Optional[str]:
        return self.bookingId


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    facility_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

"""Facility domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ...status_updates import StatusUpdateRequest


class FacilityStatusUpdateRequest(StatusUpdateRequest):
    """Body of POST /api/facilities/update-status"""

    facilityId: Optional[str] = Field(None, validation_alias=AliasChoices("facilityId", "id"))

    @property
    def entity_id(self) -> Optional[str]:
        return self.facilityId


class FacilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    location: Optional[str] = None
    capacity: Optional[int] = None
    owner_email: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

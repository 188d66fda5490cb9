"""Status vocabularies shared by the API and the client controls"""

from dataclasses import dataclass

PENDING = "pending"


@dataclass(frozen=True)
class EntityKind:
    """Describes one entity type that goes through the approve/reject flow"""

    name: str  # singular, e.g. "booking"
    plural: str  # URL segment and cache tag, e.g. "bookings"
    id_field: str  # JSON field carrying the entity ID in update requests
    statuses: tuple[str, ...]
    approve_status: str
    reject_status: str = "rejected"

    @property
    def update_path(self) -> str:
        return f"/api/{self.plural}/update-status"

    def detail_path(self, entity_id: str) -> str:
        return f"/api/{self.plural}/{entity_id}"

    def storage_key(self, entity_id: str) -> str:
        return f"{self.name}_status_{entity_id}"

    def entity_tag(self, entity_id: str) -> str:
        return f"{self.name}:{entity_id}"

    def target_for(self, action: str) -> str:
        """Map an 'approve' / 'reject' action to this entity's target status"""
        if action == "approve":
            return self.approve_status
        if action == "reject":
            return self.reject_status
        raise ValueError(f"Unknown action: {action}")

    def is_valid(self, status: str) -> bool:
        return status in self.statuses


BOOKING = EntityKind(
    name="booking",
    plural="bookings",
    id_field="bookingId",
    statuses=("pending", "approved", "rejected", "cancelled", "completed"),
    approve_status="approved",
)

FACILITY = EntityKind(
    name="facility",
    plural="facilities",
    id_field="facilityId",
    statuses=("pending", "active", "rejected"),
    approve_status="active",
)

ENTITY_KINDS = {kind.name: kind for kind in (BOOKING, FACILITY)}

# Badge classes for settled statuses; unknown statuses fall back to gray
STATUS_STYLES = {
    "approved": "bg-green-50 text-green-700",
    "active": "bg-green-50 text-green-700",
    "rejected": "bg-red-50 text-red-700",
    "cancelled": "bg-orange-50 text-orange-700",
    "completed": "bg-blue-50 text-blue-700",
}
DEFAULT_STATUS_STYLE = "bg-gray-50 text-gray-700"

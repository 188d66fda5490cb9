"""Tests for POST /api/bookings/update-status and /api/facilities/update-status"""

import asyncio

import httpx
import pytest

from venuedesk.domain.bookings.router import get_booking_service
from venuedesk.domain.bookings.service import BookingService
from venuedesk.domain.facilities.router import get_facility_service
from venuedesk.domain.bookings.schemas import BookingStatusUpdateRequest
from venuedesk.domain.facilities.schemas import FacilityStatusUpdateRequest
from venuedesk.status_updates import StatusUpdateRequest, StatusUpdateResult, get_status_update_timeout
from venuedesk.webhooks import WebhookNotifier, verify_signature


class RecordingService:
    """Stands in for an entity service and remembers every call"""

    def __init__(self, result=None, delay=0.0, error=None):
        self.calls = []
        self.result = result or StatusUpdateResult(success=True, message="ok", webhook_sent=True)
        self.delay = delay
        self.error = error

    async def update_status(self, entity_id, status, previous_status=None):
        self.calls.append((entity_id, status, previous_status))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def recording_service(api_app):
    service = RecordingService()
    api_app.dependency_overrides[get_booking_service] = lambda: service
    return service


def test_approve_booking_updates_store(client, make_booking, booking_status):
    booking_id = make_booking()

    res = client.post(
        "/api/bookings/update-status",
        json={"bookingId": booking_id, "status": "approved", "previousStatus": "pending"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["webhookSent"] is False
    assert body["message"] == "Booking status updated to approved"
    assert "partial" not in body
    assert booking_status(booking_id) == "approved"


def test_update_response_forbids_caching(client, make_booking):
    booking_id = make_booking()

    res = client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "rejected"})

    assert res.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
    assert res.headers["Pragma"] == "no-cache"
    assert res.headers["Expires"] == "0"


def test_plain_id_field_is_accepted(client, make_booking, booking_status):
    booking_id = make_booking()

    res = client.post("/api/bookings/update-status", json={"id": booking_id, "status": "rejected"})

    assert res.status_code == 200
    assert booking_status(booking_id) == "rejected"


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "approved"},
        {"bookingId": "b-1"},
        {"bookingId": "", "status": "approved"},
        {"bookingId": "b-1", "status": ""},
        [],
    ],
)
def test_missing_fields_return_400_without_touching_the_service(client, recording_service, payload):
    res = client.post("/api/bookings/update-status", json=payload)

    assert res.status_code == 400
    assert res.json()["error"] == "Missing required fields"
    assert recording_service.calls == []


def test_malformed_json_returns_400(client, recording_service):
    res = client.post(
        "/api/bookings/update-status",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert res.status_code == 400
    assert recording_service.calls == []


def test_unknown_booking_returns_404(client):
    res = client.post("/api/bookings/update-status", json={"bookingId": "missing", "status": "approved"})

    assert res.status_code == 404
    assert res.json()["success"] is False
    assert res.json()["error"] == "Booking not found"


def test_status_outside_booking_vocabulary_is_rejected(client, make_booking, booking_status):
    booking_id = make_booking()

    res = client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "active"})

    assert res.status_code == 404
    assert "Invalid booking status" in res.json()["error"]
    assert booking_status(booking_id) == "pending"


def test_previous_status_is_forwarded_to_the_service(client, recording_service):
    client.post(
        "/api/bookings/update-status",
        json={"bookingId": "b-1", "status": "approved", "previousStatus": "pending", "timestamp": 1700000000000},
    )

    assert recording_service.calls == [("b-1", "approved", "pending")]


def test_numeric_ids_are_coerced_to_strings(client, recording_service):
    client.post("/api/bookings/update-status", json={"bookingId": 42, "status": "approved"})

    assert recording_service.calls[0][0] == "42"


def test_deadline_expiry_reports_partial_success(client, api_app):
    slow = RecordingService(delay=0.3)
    api_app.dependency_overrides[get_booking_service] = lambda: slow
    api_app.dependency_overrides[get_status_update_timeout] = lambda: 0.02

    res = client.post("/api/bookings/update-status", json={"bookingId": "b-1", "status": "approved"})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["partial"] is True
    assert body["webhookSent"] is False
    assert body["message"] == "Status updated but notification may have timed out"
    assert len(slow.calls) == 1


def test_unexpected_service_error_returns_500(client, api_app):
    api_app.dependency_overrides[get_booking_service] = lambda: RecordingService(error=RuntimeError("db gone"))

    res = client.post("/api/bookings/update-status", json={"bookingId": "b-1", "status": "approved"})

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Internal server error", "timestamp": res.json()["timestamp"]}


def test_webhook_is_signed_and_reported(client, api_app, render_cache, make_booking):
    received = []

    def receiver(request: httpx.Request):
        received.append(request)
        return httpx.Response(200, json={"ok": True})

    notifier = WebhookNotifier(
        "https://hooks.example.com/bookings", secret="whsec-test", transport=httpx.MockTransport(receiver)
    )
    api_app.dependency_overrides[get_booking_service] = lambda: BookingService(
        notifier=notifier, cache=render_cache
    )
    booking_id = make_booking()

    res = client.post(
        "/api/bookings/update-status",
        json={"bookingId": booking_id, "status": "approved", "previousStatus": "pending"},
    )

    assert res.json()["webhookSent"] is True
    assert len(received) == 1
    request = received[0]
    assert verify_signature(
        "whsec-test",
        request.headers["X-Webhook-Timestamp"],
        request.content,
        request.headers["X-Webhook-Signature"],
    )
    assert b'"booking.status_updated"' in request.content


def test_failed_webhook_does_not_fail_the_update(client, api_app, render_cache, make_booking, booking_status):
    notifier = WebhookNotifier(
        "https://hooks.example.com/bookings",
        transport=httpx.MockTransport(lambda request: httpx.Response(502)),
    )
    api_app.dependency_overrides[get_booking_service] = lambda: BookingService(
        notifier=notifier, cache=render_cache
    )
    booking_id = make_booking()

    res = client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "approved"})

    assert res.status_code == 200
    assert res.json()["webhookSent"] is False
    assert booking_status(booking_id) == "approved"


def test_update_drops_cached_renders(client, make_booking):
    booking_id = make_booking()
    assert client.get(f"/api/bookings/{booking_id}").json()["status"] == "pending"

    client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "approved"})

    assert client.get(f"/api/bookings/{booking_id}").json()["status"] == "approved"


def test_approve_facility(client, make_facility, facility_status):
    facility_id = make_facility()

    res = client.post(
        "/api/facilities/update-status",
        json={"facilityId": facility_id, "status": "active", "previousStatus": "pending"},
    )

    assert res.status_code == 200
    assert res.json()["success"] is True
    assert "timestamp" in res.json()
    assert facility_status(facility_id) == "active"


def test_facility_rejects_booking_statuses(client, make_facility, facility_status):
    facility_id = make_facility()

    res = client.post("/api/facilities/update-status", json={"facilityId": facility_id, "status": "approved"})

    assert res.status_code == 404
    assert facility_status(facility_id) == "pending"


def test_facility_missing_fields(client, api_app):
    service = RecordingService()
    api_app.dependency_overrides[get_facility_service] = lambda: service

    res = client.post("/api/facilities/update-status", json={"facilityId": "f-1"})

    assert res.status_code == 400
    assert service.calls == []


def test_unknown_facility_returns_404(client):
    res = client.post("/api/facilities/update-status", json={"facilityId": "nope", "status": "rejected"})

    assert res.status_code == 404
    assert res.json()["error"] == "Facility not found"


def test_request_schemas_name_their_id_field():
    assert StatusUpdateRequest.__abstractmethods__ == frozenset({"entity_id"})
    with pytest.raises(TypeError):
        StatusUpdateRequest(status="approved")

    assert BookingStatusUpdateRequest.model_validate({"id": 7, "status": "approved"}).entity_id == "7"
    assert FacilityStatusUpdateRequest.model_validate({"facilityId": "f-1", "status": "active"}).entity_id == "f-1"

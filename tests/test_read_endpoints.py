import asyncio

import httpx

from venuedesk.client.api import StatusApiClient
from venuedesk.statuses import BOOKING


def test_list_bookings_with_status_filter(client, make_booking):
    pending_id = make_booking()
    make_booking(status="approved", customer_name="Grace Hopper")

    everything = client.get("/api/bookings").json()
    pending = client.get("/api/bookings", params={"status": "pending"}).json()

    assert len(everything) == 2
    assert [b["id"] for b in pending] == [pending_id]


def test_booking_detail_and_missing_booking(client, make_booking):
    booking_id = make_booking(notes="Projector needed")

    res = client.get(f"/api/bookings/{booking_id}")
    assert res.status_code == 200
    assert res.json()["status"] == "pending"
    assert res.json()["notes"] == "Projector needed"

    missing = client.get("/api/bookings/does-not-exist")
    assert missing.status_code == 404
    assert missing.json()["success"] is False
    assert missing.json()["error"] == "Booking not found"


def test_detail_is_served_from_cache_until_invalidated(client, make_booking, fake_redis):
    booking_id = make_booking()

    client.get(f"/api/bookings/{booking_id}")
    assert f"render:/api/bookings/{booking_id}" in fake_redis.values

    client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "approved"})

    assert f"render:/api/bookings/{booking_id}" not in fake_redis.values
    assert client.get(f"/api/bookings/{booking_id}").json()["status"] == "approved"


def test_list_render_is_dropped_by_an_update(client, make_booking, fake_redis):
    booking_id = make_booking()

    client.get("/api/bookings", params={"status": "pending"})
    assert "render:/api/bookings?status=pending" in fake_redis.values

    client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "rejected"})

    assert client.get("/api/bookings", params={"status": "pending"}).json() == []


def test_facility_reads(client, make_facility):
    facility_id = make_facility(status="active", capacity=120)
    make_facility(name="Studio B")

    assert len(client.get("/api/facilities", params={"status": "pending"}).json()) == 1

    detail = client.get(f"/api/facilities/{facility_id}").json()
    assert detail["status"] == "active"
    assert detail["capacity"] == 120

    missing = client.get("/api/facilities/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "Facility not found"


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_no_cache_read_skips_a_render_stored_after_the_update(client, make_booking, render_cache):
    booking_id = make_booking()
    path = f"/api/bookings/{booking_id}"

    # A slow read renders before the update commits and stores after the purge
    late_render = client.get(path).json()
    client.post("/api/bookings/update-status", json={"bookingId": booking_id, "status": "approved"})
    render_cache.set(path, late_render, tags=["bookings", f"booking:{booking_id}"])

    fresh = client.get(path, headers={"Cache-Control": "no-cache, no-store", "Pragma": "no-cache"})

    assert fresh.json()["status"] == "approved"
    assert render_cache.get(path)["status"] == "pending"


def test_status_client_refresh_reads_the_store(api_app, make_booking, render_cache):
    booking_id = make_booking()
    render_cache.set(f"/api/bookings/{booking_id}", {"id": booking_id, "status": "approved"}, tags=[])

    async def fetch():
        async with StatusApiClient("http://testserver", transport=httpx.ASGITransport(app=api_app)) as api:
            return await api.fetch_status(BOOKING, booking_id)

    assert asyncio.run(fetch()) == "pending"


def test_no_cache_list_read_is_not_stored(client, make_booking, fake_redis):
    make_booking()

    client.get("/api/bookings", headers={"Cache-Control": "no-cache"})

    assert "render:/api/bookings" not in fake_redis.values

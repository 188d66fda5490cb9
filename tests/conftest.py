import fnmatch
import os

# Must be set before venuedesk.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REVALIDATION_SECRET", None)
os.environ.pop("BOOKING_WEBHOOK_URL", None)
os.environ.pop("FACILITY_WEBHOOK_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from venuedesk.cache import RenderCache, get_render_cache  # noqa: E402
from venuedesk.database import Base, SessionLocal, engine  # noqa: E402
from venuedesk.domain.bookings.repository import BookingRepository  # noqa: E402
from venuedesk.domain.bookings.router import get_booking_service  # noqa: E402
from venuedesk.domain.bookings.service import BookingService  # noqa: E402
from venuedesk.domain.facilities.repository import FacilityRepository  # noqa: E402
from venuedesk.domain.facilities.router import get_facility_service  # noqa: E402
from venuedesk.domain.facilities.service import FacilityService  # noqa: E402
from venuedesk.main import app  # noqa: E402
from venuedesk.webhooks import WebhookNotifier  # noqa: E402


class FakeRedis:
    """Just enough of the redis-py client for RenderCache"""

    def __init__(self):
        self.values = {}
        self.sets = {}

    def ping(self):
        return True

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value

    def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def expire(self, key, ttl):
        return True

    def keys(self, pattern):
        return [k for k in list(self.values) + list(self.sets) if fnmatch.fnmatchcase(k, pattern)]

    def delete(self, *keys):
        deleted = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                deleted += 1
            elif self.sets.pop(key, None) is not None:
                deleted += 1
        return deleted


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def render_cache(fake_redis):
    return RenderCache(client=fake_redis)


@pytest.fixture
def api_app(render_cache):
    """The application wired to the fake cache and with webhooks disabled"""
    app.dependency_overrides[get_render_cache] = lambda: render_cache
    app.dependency_overrides[get_booking_service] = lambda: BookingService(
        notifier=WebhookNotifier(None), cache=render_cache
    )
    app.dependency_overrides[get_facility_service] = lambda: FacilityService(
        notifier=WebhookNotifier(None), cache=render_cache
    )
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_app):
    with TestClient(api_app) as test_client:
        yield test_client


@pytest.fixture
def make_booking():
    def _make(status="pending", **fields):
        fields.setdefault("customer_name", "Ada Lovelace")
        fields.setdefault("customer_email", "ada@example.com")
        with SessionLocal() as db:
            return BookingRepository.create_booking(db, status=status, **fields).id

    return _make


@pytest.fixture
def make_facility():
    def _make(status="pending", **fields):
        fields.setdefault("name", "Main Hall")
        fields.setdefault("location", "Building A")
        with SessionLocal() as db:
            return FacilityRepository.create_facility(db, status=status, **fields).id

    return _make


@pytest.fixture
def booking_status():
    def _status(booking_id):
        with SessionLocal() as db:
            booking = BookingRepository.get_booking_by_id(db, booking_id)
            return booking.status if booking else None

    return _status


@pytest.fixture
def facility_status():
    def _status(facility_id):
        with SessionLocal() as db:
            facility = FacilityRepository.get_facility_by_id(db, facility_id)
            return facility.status if facility else None

    return _status

# backend/tests/routes/test_public_availability.py
"""Storefront app-proxy endpoints."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient
import pytest

from booking_engine.database import get_db
from booking_engine.main import app
from tests.factories import (
    DEFAULT_SHOP,
    create_booking,
    create_location,
    create_resource,
    create_service,
    create_tenant,
    create_weekly_schedule,
    link_service,
)

MONDAY = "2024-01-08"


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def shop(db):
    tenant = create_tenant(db)
    location = create_location(db, tenant)
    resource = create_resource(db, tenant)
    create_weekly_schedule(db, resource, location, day_of_week=1)
    return tenant, location, resource


def _params(location, resource, **extra):
    params = {
        "shop": DEFAULT_SHOP,
        "date": MONDAY,
        "resourceId": resource.id,
        "locationId": location.id,
    }
    params.update(extra)
    return params


class TestAvailabilityEndpoint:
    def test_returns_formatted_slots(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability", params=_params(location, resource, buffer=10)
        )

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        body = response.json()
        assert body["success"] is True
        assert body["timezone"] == "Asia/Tokyo"
        assert body["duration"] == 60
        assert body["buffer"] == 10
        assert body["interval"] == 30
        assert body["totalSlots"] == 16
        assert body["slots"][0]["startTime"] == "09:00"
        assert body["slots"][0]["endTime"] == "10:00"
        assert body["slots"][0]["startTimeUTC"].startswith("2024-01-08T00:00:00")
        assert body["slots"][-1]["startTime"] == "16:30"

    def test_service_and_custom_duration(self, client, db, shop):
        tenant, location, resource = shop
        service = create_service(db, tenant, duration_min=60, buffer_time_min=15)
        link_service(db, resource, service, custom_duration=90)

        response = client.get(
            "/apps/booking/availability",
            params=_params(location, resource, serviceId=service.id, duration=30),
        )

        body = response.json()
        assert body["duration"] == 90
        assert body["buffer"] == 15

    def test_booked_time_is_excluded(self, client, db, shop):
        tenant, location, resource = shop
        create_booking(
            db,
            tenant,
            resource,
            location,
            datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 8, 1, 0, tzinfo=timezone.utc),
        )

        response = client.get("/apps/booking/availability", params=_params(location, resource))

        starts = [slot["startTime"] for slot in response.json()["slots"]]
        assert "09:00" not in starts
        assert "09:30" not in starts
        assert "10:00" in starts

    @pytest.mark.parametrize("missing", ["shop", "date", "resourceId", "locationId"])
    def test_missing_parameter(self, client, shop, missing):
        _, location, resource = shop
        params = _params(location, resource)
        params.pop(missing)

        response = client.get("/apps/booking/availability", params=params)

        assert response.status_code == 400
        assert response.headers["cache-control"] == "no-store"

    def test_malformed_date(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability", params=_params(location, resource, date="08-01-2024")
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DATE"

    def test_invalid_interval(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability", params=_params(location, resource, interval=0)
        )

        assert response.status_code == 400

    def test_unknown_resource_and_inactive_location(self, client, db, shop):
        tenant, location, resource = shop
        closed_location = create_location(db, tenant, is_active=False)

        missing = client.get(
            "/apps/booking/availability", params=_params(location, resource, resourceId="nope")
        )
        inactive = client.get(
            "/apps/booking/availability", params=_params(closed_location, resource)
        )

        assert missing.status_code == 404
        assert missing.json()["detail"]["code"] == "RESOURCE_NOT_FOUND"
        assert inactive.status_code == 404
        assert inactive.json()["detail"]["code"] == "LOCATION_NOT_FOUND"

    def test_other_shops_resources_are_hidden(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability",
            params=_params(location, resource, shop="someone-else.myshopify.com"),
        )

        assert response.status_code == 404

    def test_quota_exceeded(self, client, db, shop):
        tenant, location, resource = shop
        tenant.current_usage = 30
        db.commit()

        response = client.get("/apps/booking/availability", params=_params(location, resource))

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["quotaLimitReached"] is True
        assert detail["code"] == "QUOTA_EXCEEDED"
        assert detail["details"] == {
            "usage_limit": 30,
            "current_usage": 30,
            "plan_type": "FREE",
        }


class TestSlotCheckEndpoint:
    def test_available_start(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability/check",
            params={
                "shop": DEFAULT_SHOP,
                "start": "2024-01-08T01:00:00Z",
                "resourceId": resource.id,
                "locationId": location.id,
            },
        )

        assert response.status_code == 200
        assert response.json()["available"] is True
        assert response.json()["startTimeUTC"] == "2024-01-08T01:00:00+00:00"

    def test_conflicting_start(self, client, db, shop):
        tenant, location, resource = shop
        create_booking(
            db,
            tenant,
            resource,
            location,
            datetime(2024, 1, 8, 1, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 8, 2, 0, tzinfo=timezone.utc),
        )

        response = client.get(
            "/apps/booking/availability/check",
            params={
                "shop": DEFAULT_SHOP,
                "start": "2024-01-08T10:30:00+09:00",
                "resourceId": resource.id,
                "locationId": location.id,
                "duration": 30,
            },
        )

        body = response.json()
        assert body["available"] is False
        assert body["reason"].startswith("Conflicts")

    def test_bad_start(self, client, shop):
        _, location, resource = shop

        response = client.get(
            "/apps/booking/availability/check",
            params={
                "shop": DEFAULT_SHOP,
                "start": "tomorrow",
                "resourceId": resource.id,
                "locationId": location.id,
            },
        )

        assert response.status_code == 400


class TestOperationalEndpoints:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_metrics_exposition(self, client, shop):
        _, location, resource = shop
        client.get("/apps/booking/availability", params=_params(location, resource))

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "booking_engine_availability_queries_total" in response.text

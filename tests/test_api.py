"""
Integration tests for the REST API endpoints.

Runs the real app against the in-memory SQLite database; each request gets
its own committed session, so state carries across calls exactly as it
would in production.  The Redis publisher is an ``AsyncMock``.
"""

from unittest.mock import AsyncMock

import pytest

from src.services.notifications import NotificationService
from src.services.trips import TripService
from tests.conftest import TRIP_PAYLOAD, auth_headers


async def _create_trip(client, company, **overrides):
    resp = await client.post(
        "/api/v1/trips",
        json={**TRIP_PAYLOAD, **overrides},
        headers=auth_headers(company.principal),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _assign(client, company, driver, trip_id):
    resp = await client.post(
        "/api/v1/trip-requests",
        json={"trip_id": trip_id, "driver_id": driver.profile.id},
        headers=auth_headers(company.principal),
    )
    assert resp.status_code == 201, resp.text
    resp = await client.put(
        f"/api/v1/trip-requests/{resp.json()['id']}/accept",
        headers=auth_headers(driver.principal),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestHealthAndAuth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_missing_identity_headers(self, client):
        resp = await client.get("/api/v1/trips")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {"X-User-Id": "abc", "X-User-Role": "company"},
            {"X-User-Id": "1", "X-User-Role": "passenger"},
        ],
    )
    async def test_malformed_identity_headers(self, client, headers):
        resp = await client.get("/api/v1/trips", headers=headers)
        assert resp.status_code == 401


class TestTripLifecycle:
    @pytest.mark.asyncio
    async def test_full_round_trip(self, client, company, driver, publisher):
        trip = await _create_trip(client, company)
        assert trip["status"] == "pending"
        assert trip["driver_id"] is None

        request = await _assign(client, company, driver, trip["id"])
        assert request["status"] == "accepted"

        resp = await client.put(
            f"/api/v1/trips/{trip['id']}/start", headers=auth_headers(driver.principal)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_progress"

        resp = await client.put(
            f"/api/v1/trips/{trip['id']}/complete",
            json={"rating": 4, "comment": "Smooth handover"},
            headers=auth_headers(driver.principal),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"
        assert resp.json()["driver_id"] == driver.profile.id

        # Exactly one rating exists: rating again is a conflict.
        resp = await client.post(
            f"/api/v1/trips/{trip['id']}/rate-company",
            json={"rating": 5},
            headers=auth_headers(driver.principal),
        )
        assert resp.status_code == 409
        assert resp.json()["kind"] == "conflict"

        resp = await client.get(
            "/api/v1/notifications", headers=auth_headers(company.principal)
        )
        titles = {n["title"] for n in resp.json()}
        assert {
            "Trip Request Accepted",
            "Trip Started",
            "Trip Completed",
            "New Rating Received",
        } <= titles
        assert publisher.publish_created.await_count >= 5

    @pytest.mark.asyncio
    async def test_complete_with_bad_rating_still_completes(
        self, client, company, driver
    ):
        trip = await _create_trip(client, company)
        await _assign(client, company, driver, trip["id"])
        headers = auth_headers(driver.principal)
        await client.put(f"/api/v1/trips/{trip['id']}/start", headers=headers)

        resp = await client.put(
            f"/api/v1/trips/{trip['id']}/complete", json={"rating": 9}, headers=headers
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_company_rates_driver_after_completion(self, client, company, driver):
        trip = await _create_trip(client, company)
        await _assign(client, company, driver, trip["id"])
        headers = auth_headers(driver.principal)
        await client.put(f"/api/v1/trips/{trip['id']}/start", headers=headers)
        await client.put(f"/api/v1/trips/{trip['id']}/complete", headers=headers)

        resp = await client.post(
            f"/api/v1/trips/{trip['id']}/rate-driver",
            json={"rating": 5, "comment": "Spotless van"},
            headers=auth_headers(company.principal),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["rated_type"] == "driver"
        assert body["rated_id"] == driver.profile.id
        assert body["rating"] == 5

    @pytest.mark.asyncio
    async def test_out_of_range_rating_is_a_validation_error(
        self, client, company, driver
    ):
        trip = await _create_trip(client, company)
        await _assign(client, company, driver, trip["id"])
        headers = auth_headers(driver.principal)
        await client.put(f"/api/v1/trips/{trip['id']}/start", headers=headers)
        await client.put(f"/api/v1/trips/{trip['id']}/complete", headers=headers)

        resp = await client.post(
            f"/api/v1/trips/{trip['id']}/rate-driver",
            json={"rating": 9},
            headers=auth_headers(company.principal),
        )

        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation"

    @pytest.mark.asyncio
    async def test_edit_and_delete_pending_trip(self, client, company):
        trip = await _create_trip(client, company)
        headers = auth_headers(company.principal)

        resp = await client.put(
            f"/api/v1/trips/{trip['id']}",
            json={"destination": "Beach Resort"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["destination"] == "Beach Resort"

        resp = await client.delete(f"/api/v1/trips/{trip['id']}", headers=headers)
        assert resp.status_code == 200

        resp = await client.get(f"/api/v1/trips/{trip['id']}", headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Trip not found", "kind": "not_found"}

    @pytest.mark.asyncio
    async def test_assigned_trip_is_locked(self, client, company, driver):
        trip = await _create_trip(client, company)
        await _assign(client, company, driver, trip["id"])
        headers = auth_headers(company.principal)

        resp = await client.put(
            f"/api/v1/trips/{trip['id']}", json={"destination": "X"}, headers=headers
        )
        assert resp.status_code == 409
        assert resp.json()["kind"] == "invalid_state"

        resp = await client.delete(f"/api/v1/trips/{trip['id']}", headers=headers)
        assert resp.status_code == 404

        resp = await client.get(f"/api/v1/trips/{trip['id']}", headers=headers)
        assert resp.json()["destination"] == TRIP_PAYLOAD["destination"]

    @pytest.mark.asyncio
    async def test_cancel_assigned_trip(self, client, company, driver):
        trip = await _create_trip(client, company)
        await _assign(client, company, driver, trip["id"])

        resp = await client.post(
            f"/api/v1/trips/{trip['id']}/cancel", headers=auth_headers(company.principal)
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["driver_id"] is None

        resp = await client.get(
            "/api/v1/notifications", headers=auth_headers(driver.principal)
        )
        assert "Trip Cancelled" in {n["title"] for n in resp.json()}

    @pytest.mark.asyncio
    async def test_driver_cannot_create_trips(self, client, driver):
        resp = await client.post(
            "/api/v1/trips", json=TRIP_PAYLOAD, headers=auth_headers(driver.principal)
        )
        assert resp.status_code == 403
        assert resp.json()["kind"] == "forbidden"

    @pytest.mark.asyncio
    async def test_blank_visa_numbers_do_not_collide(self, client, company):
        first = await _create_trip(client, company, visa_number="")
        second = await _create_trip(client, company, visa_number="")

        assert first["visa_number"] is None
        assert second["visa_number"] is None

    @pytest.mark.asyncio
    async def test_duplicate_visa_number_is_a_conflict(self, client, company):
        await _create_trip(client, company, visa_number="V-55")

        resp = await client.post(
            "/api/v1/trips",
            json={**TRIP_PAYLOAD, "visa_number": "V-55"},
            headers=auth_headers(company.principal),
        )

        assert resp.status_code == 409
        assert resp.json()["kind"] == "conflict"

    @pytest.mark.asyncio
    async def test_body_validation(self, client, company):
        resp = await client.post(
            "/api/v1/trips",
            json={"pickup_location": "Airport"},
            headers=auth_headers(company.principal),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_listing_by_status(self, client, company, driver):
        first = await _create_trip(client, company)
        await _create_trip(client, company, departure_time="15:00:00")
        await _assign(client, company, driver, first["id"])
        headers = auth_headers(company.principal)

        resp = await client.get("/api/v1/trips", params={"status": "assigned"}, headers=headers)
        assert [t["id"] for t in resp.json()] == [first["id"]]

        resp = await client.get("/api/v1/trips", headers=headers)
        assert len(resp.json()) == 2

        resp = await client.get(
            "/api/v1/trips/available", headers=auth_headers(driver.principal)
        )
        assert len(resp.json()) == 1


class TestRequestNegotiation:
    @pytest.mark.asyncio
    async def test_driver_initiated_flow(self, client, company, driver):
        trip = await _create_trip(client, company)

        resp = await client.post(
            "/api/v1/driver/trip-requests",
            json={"trip_id": trip["id"]},
            headers=auth_headers(driver.principal),
        )
        assert resp.status_code == 201
        assert resp.json()["request_type"] == "driver_to_company"

        resp = await client.get(
            "/api/v1/trip-requests",
            params={"type": "driver_to_company"},
            headers=auth_headers(company.principal),
        )
        incoming = resp.json()
        assert [r["trip_id"] for r in incoming] == [trip["id"]]

        resp = await client.put(
            f"/api/v1/trip-requests/{incoming[0]['id']}/accept",
            headers=auth_headers(company.principal),
        )
        assert resp.status_code == 200

        resp = await client.get(
            f"/api/v1/trips/{trip['id']}", headers=auth_headers(driver.principal)
        )
        assert resp.json()["status"] == "assigned"
        assert resp.json()["driver_id"] == driver.profile.id

    @pytest.mark.asyncio
    async def test_second_pending_driver_request_conflicts(self, client, company, driver):
        first = await _create_trip(client, company)
        second = await _create_trip(client, company, departure_time="18:00:00")
        headers = auth_headers(driver.principal)

        resp = await client.post(
            "/api/v1/driver/trip-requests", json={"trip_id": first["id"]}, headers=headers
        )
        assert resp.status_code == 201
        resp = await client.post(
            "/api/v1/driver/trip-requests", json={"trip_id": second["id"]}, headers=headers
        )
        assert resp.status_code == 409
        assert resp.json()["kind"] == "conflict"

    @pytest.mark.asyncio
    async def test_reject_and_withdraw(self, client, company, driver):
        trip = await _create_trip(client, company)
        company_headers = auth_headers(company.principal)

        resp = await client.post(
            "/api/v1/trip-requests",
            json={"trip_id": trip["id"], "driver_id": driver.profile.id},
            headers=company_headers,
        )
        request_id = resp.json()["id"]

        resp = await client.post(
            "/api/v1/trip-requests/cancel",
            json={"requestId": request_id},
            headers=company_headers,
        )
        assert resp.status_code == 200

        resp = await client.put(
            f"/api/v1/trip-requests/{request_id}/reject",
            headers=auth_headers(driver.principal),
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_driver_rejects_offer(self, client, company, driver):
        trip = await _create_trip(client, company)
        resp = await client.post(
            "/api/v1/trip-requests",
            json={"trip_id": trip["id"], "driver_id": driver.profile.id},
            headers=auth_headers(company.principal),
        )

        resp = await client.put(
            f"/api/v1/trip-requests/{resp.json()['id']}/reject",
            headers=auth_headers(driver.principal),
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_company_cannot_accept_its_own_offer(self, client, company, driver):
        trip = await _create_trip(client, company)
        headers = auth_headers(company.principal)
        resp = await client.post(
            "/api/v1/trip-requests",
            json={"trip_id": trip["id"], "driver_id": driver.profile.id},
            headers=headers,
        )

        resp = await client.put(
            f"/api/v1/trip-requests/{resp.json()['id']}/accept", headers=headers
        )

        assert resp.status_code == 403


class TestDriverAvailability:
    WINDOW = {
        "current_location": "airport",
        "available_from": "2026-11-02T06:00:00",
        "available_to": "2026-11-02T12:00:00",
    }

    @pytest.mark.asyncio
    async def test_driver_sets_availability(self, client, driver):
        resp = await client.put(
            "/api/v1/driver/availability",
            json=self.WINDOW,
            headers=auth_headers(driver.principal),
        )

        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["current_location"] == "airport"
        assert body["available_from"].startswith("2026-11-02T06:00")

    @pytest.mark.asyncio
    async def test_inverted_window_is_rejected(self, client, driver):
        resp = await client.put(
            "/api/v1/driver/availability",
            json={
                "available_from": "2026-11-02T12:00:00",
                "available_to": "2026-11-02T06:00:00",
            },
            headers=auth_headers(driver.principal),
        )

        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation"

    @pytest.mark.asyncio
    async def test_available_trips_follow_the_window(self, client, company, driver):
        morning = await _create_trip(client, company)
        await _create_trip(client, company, departure_time="18:00:00")
        await client.put(
            "/api/v1/driver/availability",
            json=self.WINDOW,
            headers=auth_headers(driver.principal),
        )

        resp = await client.get(
            "/api/v1/trips/available", headers=auth_headers(driver.principal)
        )

        assert [t["id"] for t in resp.json()] == [morning["id"]]

    @pytest.mark.asyncio
    async def test_company_finds_available_drivers(
        self, client, company, driver, other_driver
    ):
        trip = await _create_trip(client, company)
        await client.put(
            "/api/v1/driver/availability",
            json=self.WINDOW,
            headers=auth_headers(driver.principal),
        )

        resp = await client.get(
            f"/api/v1/trips/{trip['id']}/available-drivers",
            headers=auth_headers(company.principal),
        )

        assert resp.status_code == 200
        assert [d["id"] for d in resp.json()] == [driver.profile.id]

    @pytest.mark.asyncio
    async def test_drivers_cannot_list_available_drivers(self, client, company, driver):
        trip = await _create_trip(client, company)

        resp = await client.get(
            f"/api/v1/trips/{trip['id']}/available-drivers",
            headers=auth_headers(driver.principal),
        )

        assert resp.status_code == 403


class TestNotificationEndpoints:
    @pytest.mark.asyncio
    async def test_inbox_round_trip(self, client, company, driver):
        trip = await _create_trip(client, company)
        await client.post(
            "/api/v1/trip-requests",
            json={"trip_id": trip["id"], "driver_id": driver.profile.id},
            headers=auth_headers(company.principal),
        )
        headers = auth_headers(driver.principal)

        resp = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert resp.json() == {"count": 1}

        inbox = (await client.get("/api/v1/notifications", headers=headers)).json()
        assert inbox[0]["title"] == "New Trip Request"

        resp = await client.put(
            f"/api/v1/notifications/{inbox[0]['id']}/read", headers=headers
        )
        assert resp.status_code == 200

        resp = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert resp.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client, company, driver):
        for departure in ("08:00:00", "13:00:00"):
            trip = await _create_trip(client, company, departure_time=departure)
            await client.post(
                "/api/v1/trip-requests",
                json={"trip_id": trip["id"], "driver_id": driver.profile.id},
                headers=auth_headers(company.principal),
            )
        headers = auth_headers(driver.principal)

        resp = await client.put("/api/v1/notifications/read-all", headers=headers)
        assert resp.status_code == 200

        resp = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert resp.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_unknown_notification(self, client, driver):
        resp = await client.put(
            "/api/v1/notifications/999/read", headers=auth_headers(driver.principal)
        )
        assert resp.status_code == 404
        assert resp.json()["kind"] == "not_found"


class TestUnexpectedErrors:
    @pytest.mark.asyncio
    async def test_internal_errors_are_not_leaked(self, client, company, monkeypatch):
        monkeypatch.setattr(
            TripService,
            "get_trip",
            AsyncMock(side_effect=RuntimeError("connection string with password")),
        )

        resp = await client.get("/api/v1/trips/1", headers=auth_headers(company.principal))

        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error", "kind": "internal"}

    @pytest.mark.asyncio
    async def test_failed_request_publishes_no_events(
        self, client, company, driver, publisher, monkeypatch
    ):
        trip = await _create_trip(client, company)
        emit = NotificationService.emit

        async def emit_then_fail(self, *args):
            await emit(self, *args)
            raise RuntimeError("downstream failure")

        monkeypatch.setattr(NotificationService, "emit", emit_then_fail)
        resp = await client.post(
            "/api/v1/trip-requests",
            json={"trip_id": trip["id"], "driver_id": driver.profile.id},
            headers=auth_headers(company.principal),
        )

        assert resp.status_code == 500
        publisher.publish_created.assert_not_awaited()
        inbox = await client.get(
            "/api/v1/notifications", headers=auth_headers(driver.principal)
        )
        assert inbox.json() == []

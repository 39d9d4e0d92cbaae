"""
End-to-end tests through the HTTP API: authentication, the error envelope
and the booking flow.
"""

from datetime import timedelta

from event_marketplace.models import UserRole
from event_marketplace.utils.dates import utcnow

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
TEST_PASSWORD = "secret123"


async def register(client, email="ada@example.com", **overrides):
    payload = {"name": "Ada Obi", "email": email, "password": TEST_PASSWORD, **overrides}
    return await client.post(REGISTER_URL, json=payload)


class TestHealth:
    async def test_root_and_health(self, client):
        root = await client.get("/")
        health = await client.get("/health")

        assert root.status_code == 200
        assert root.json()["status"] == "operational"
        assert health.json() == {"status": "healthy", "service": "event-marketplace"}


class TestAuthentication:
    async def test_register_returns_token_and_profile(self, client):
        response = await register(client, email="Ada@Example.com")

        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["role"] == "host"

    async def test_duplicate_email_conflicts(self, client):
        await register(client)

        response = await register(client)

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "CONFLICT"

    async def test_provider_needs_a_category(self, client):
        response = await register(client, role="provider")

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "BAD_REQUEST"

    async def test_login_and_me(self, client):
        await register(client)

        login = await client.post(LOGIN_URL, json={"email": "ada@example.com", "password": TEST_PASSWORD})
        token = login.json()["access_token"]
        me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})

        assert login.status_code == 200
        assert me.status_code == 200
        assert me.json()["name"] == "Ada Obi"

    async def test_wrong_password_uses_error_envelope(self, client):
        await register(client)

        response = await client.post(LOGIN_URL, json={"email": "ada@example.com", "password": "not-it"})

        assert response.status_code == 401
        body = response.json()
        assert body["error"]["error_code"] == "UNAUTHORIZED"
        assert body["error_id"]
        assert body["timestamp"]

    async def test_invalid_token_is_rejected(self, client):
        response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401

    async def test_password_reset_flow(self, client):
        await register(client)

        forgot = await client.post("/api/v1/auth/forgot-password", json={"email": "ada@example.com"})
        token = forgot.json()["reset_token"]
        reset = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": "brand-new-pass"})
        login = await client.post(LOGIN_URL, json={"email": "ada@example.com", "password": "brand-new-pass"})

        assert token
        assert reset.status_code == 200
        assert login.status_code == 200

    async def test_unknown_email_reset_looks_the_same(self, client):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 200
        assert response.json()["reset_token"] is None


class TestRequestValidation:
    async def test_malformed_json(self, client):
        response = await client.post(
            LOGIN_URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid JSON payload"

    async def test_wrong_content_type(self, client):
        response = await client.post(LOGIN_URL, content=b"email=a", headers={"Content-Type": "text/plain"})

        assert response.status_code == 415

    async def test_limit_out_of_range(self, client):
        response = await client.get("/api/v1/search", params={"type": "all", "limit": 500})

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "VALIDATION_ERROR"


class TestBookingFlow:
    async def test_host_books_provider_and_provider_confirms(
        self, client, db_session, make_user, make_provider_listing, headers_for
    ):
        host = await make_user()
        owner = await make_user(UserRole.PROVIDER, cac_verified=True)
        listing = await make_provider_listing(owner)
        await db_session.commit()

        created = await client.post(
            "/api/v1/bookings",
            headers=headers_for(host),
            json={
                "booking_type": "provider",
                "service_provider_id": str(listing.id),
                "event_details": {
                    "event_name": "Chidi's Naming Ceremony",
                    "event_date": (utcnow() + timedelta(days=21)).isoformat(),
                    "start_time": "11:00",
                    "end_time": "16:00",
                },
                "pricing": {"total_amount": "150000.00"},
            },
        )
        assert created.status_code == 201
        booking_id = created.json()["id"]

        confirmed = await client.put(
            f"/api/v1/bookings/{booking_id}/status",
            headers=headers_for(owner),
            json={"status": "confirmed"},
        )
        history = await client.get(f"/api/v1/bookings/{booking_id}/history", headers=headers_for(host))

        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"
        assert history.status_code == 200

    async def test_host_cannot_confirm_own_request(
        self, client, db_session, make_user, make_provider_listing, make_booking, headers_for
    ):
        host = await make_user()
        listing = await make_provider_listing(await make_user(UserRole.PROVIDER, cac_verified=True))
        booking = await make_booking(host, listing)
        await db_session.commit()

        response = await client.put(
            f"/api/v1/bookings/{booking.id}/status",
            headers=headers_for(host),
            json={"status": "confirmed"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "FORBIDDEN"

    async def test_missing_booking_is_404(self, client, db_session, make_user, headers_for):
        host = await make_user()
        await db_session.commit()

        response = await client.get(
            "/api/v1/bookings/00000000-0000-0000-0000-000000000000", headers=headers_for(host)
        )

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "NOT_FOUND"

    async def test_search_requires_query_or_type(self, client):
        response = await client.get("/api/v1/search")

        assert response.status_code == 400

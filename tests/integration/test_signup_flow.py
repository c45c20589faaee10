"""
Integration tests for the username claim and sign-up flow.

Tests the full flow through the API with a real database: availability
check, sign up, email confirmation callback and profile pages.
Requires PostgreSQL to be running (via docker-compose).
"""

import logging
import re

import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.api.dependencies import SESSION_COOKIE
from src.api.main import app
from src.config.settings import get_settings

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]

SIGNUP = {"email": "alice@example.com", "password": "Secure123", "username": "Alice_1"}


@pytest.fixture
def client(pool: ConnectionPool) -> TestClient:
    """Create test client with real database connection."""
    # Override the app's pool with our test pool
    app.state.pool = pool
    return TestClient(app)


def emailed_link(caplog: pytest.LogCaptureFixture, tag: str) -> str:
    match = re.search(rf"\[{tag}\] Email: \S+ Link: (\S+)", caplog.text)
    assert match is not None, f"No {tag} link logged"
    return match.group(1)


class TestCheckUsername:
    """Integration tests for GET /v1/check-username."""

    def test_fresh_name_is_available(self, client: TestClient) -> None:
        response = client.get("/v1/check-username", params={"username": "fresh_name"})

        assert response.status_code == 200
        assert response.json() == {"available": True, "message": "Username is available"}

    def test_reserved_name_any_case(self, client: TestClient) -> None:
        response = client.get("/v1/check-username", params={"username": "Settings"})

        assert response.json() == {"available": False, "message": "Username is already taken"}

    def test_invalid_name_is_400(self, client: TestClient) -> None:
        response = client.get("/v1/check-username", params={"username": "a"})

        assert response.status_code == 400
        assert response.json() == {
            "available": False,
            "message": "Username must be at least 3 characters",
        }


class TestSignUpFlow:
    """Integration tests for sign up through confirmation."""

    def test_claim_confirm_and_view_profile(
        self, client: TestClient, pool: ConnectionPool, caplog: pytest.LogCaptureFixture
    ) -> None:
        if not get_settings().require_email_confirmation:
            pytest.skip("Email confirmation disabled")

        with caplog.at_level(logging.INFO):
            signup = client.post("/v1/auth/signup", json=SIGNUP)

        assert signup.status_code == 201
        assert signup.json()["session"] is None
        assert signup.json()["user"]["username"] == "alice_1"

        taken = client.get("/v1/check-username", params={"username": "ALICE_1"})
        assert taken.json()["available"] is False

        link = emailed_link(caplog, "CONFIRM EMAIL")
        callback = client.get(link, follow_redirects=False)
        assert callback.status_code == 307
        assert callback.headers["location"] == "/alice_1"
        token = callback.cookies[SESSION_COOKIE]

        me = client.get("/v1/auth/user", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email_confirmed"] is True

        profile = client.get("/v1/profiles/Alice_1")
        assert profile.status_code == 200
        assert profile.json()["display_name"] == "Alice_1"

    def test_password_is_stored_hashed(self, client: TestClient, pool: ConnectionPool) -> None:
        client.post("/v1/auth/signup", json=SIGNUP)

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT password_hash FROM users WHERE email = %s", (SIGNUP["email"],))
            row = cursor.fetchone()

        assert row is not None
        assert row[0].startswith("$2b$")

    def test_duplicate_username_returns_409(self, client: TestClient) -> None:
        client.post("/v1/auth/signup", json=SIGNUP)

        response = client.post(
            "/v1/auth/signup",
            json={**SIGNUP, "email": "other@example.com", "username": "alice_1"},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "username_taken"

    def test_duplicate_email_returns_409(self, client: TestClient) -> None:
        client.post("/v1/auth/signup", json=SIGNUP)

        response = client.post("/v1/auth/signup", json={**SIGNUP, "username": "another"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "email_taken"

    def test_reused_confirmation_link_fails(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        if not get_settings().require_email_confirmation:
            pytest.skip("Email confirmation disabled")

        with caplog.at_level(logging.INFO):
            client.post("/v1/auth/signup", json=SIGNUP)
        link = emailed_link(caplog, "CONFIRM EMAIL")
        client.get(link, follow_redirects=False)

        again = client.get(link, follow_redirects=False)

        assert again.headers["location"] == "/?error=auth_callback_error"

"""
Unit tests for API v1 routes.

Tests endpoint responses against the application wired to in-memory
stores: envelopes, status codes, anti-forgery checks and session cookies.
"""

import time
from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.security import ActionFamily, ActionTokens
from src.domain.validation import (
    EMAIL_TAKEN,
    MAX_PHOTO_BYTES,
    PHOTO_NOT_IMAGE,
    PHOTO_TOO_LARGE,
    REQUIRED,
)
from tests.factories import TEST_SECRET, wire_payload

INVALID_CREDENTIALS = {
    "success": False,
    "data": {
        "message": "Invalid email or password.",
        "errors": {"identifier": "Invalid email or password."},
    },
}


def register(client: TestClient, headers: dict, **overrides):
    return client.post("/v1/register", json=wire_payload(**overrides), headers=headers)


class TestConfigEndpoint:
    """Tests for GET /v1/config and /v1/rules."""

    def test_config_bundle(self, client: TestClient, registration_headers: dict, login_headers: dict) -> None:
        response = client.get("/v1/config")

        assert response.status_code == 200
        data = response.json()
        assert data["endpointUrl"] == "http://testserver/v1"
        assert data["tokens"]["registration"] == registration_headers["X-Action-Token"]
        assert data["tokens"]["login"] == login_headers["X-Action-Token"]
        assert "United States" in data["countries"]
        assert data["phoneCodes"]["United States"] == "+1"

    def test_rules_document(self, client: TestClient) -> None:
        response = client.get("/v1/rules")

        assert response.status_code == 200
        assert response.json()["totalSteps"] == 5

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestActionTokens:
    """Every action requires the token of its family."""

    def test_missing_token_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/check_email", json={"email": "jane@example.com"})

        assert response.status_code == 403
        assert response.json() == {"success": False, "data": {"message": "Security check failed."}}

    def test_token_of_other_family_rejected(self, client: TestClient, login_headers: dict) -> None:
        response = client.post(
            "/v1/check_email", json={"email": "jane@example.com"}, headers=login_headers
        )

        assert response.status_code == 403

    def test_login_requires_login_token(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/login",
            json={"identifier": "jane@example.com", "password": "x", "remember": False},
            headers=registration_headers,
        )

        assert response.status_code == 403

    def test_expired_token_rejected(self, client: TestClient) -> None:
        two_days_ago = time.time() - 2 * 24 * 60 * 60
        stale = ActionTokens(TEST_SECRET, clock=lambda: two_days_ago)

        response = client.post(
            "/v1/check_email",
            json={"email": "jane@example.com"},
            headers={"X-Action-Token": stale.issue(ActionFamily.REGISTRATION)},
        )

        assert response.status_code == 403


class TestCheckEmail:
    """Tests for POST /v1/check_email."""

    def test_unknown_email(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/check_email", json={"email": "jane@example.com"}, headers=registration_headers
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"exists": False}}

    def test_registered_email_is_case_insensitive(
        self, client: TestClient, registration_headers: dict
    ) -> None:
        register(client, registration_headers)

        response = client.post(
            "/v1/check_email", json={"email": "JANE@example.com"}, headers=registration_headers
        )

        assert response.json()["data"]["exists"] is True

    def test_empty_email(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post("/v1/check_email", json={"email": " "}, headers=registration_headers)

        assert response.status_code == 422
        assert response.json()["data"]["errors"] == {"email": REQUIRED}


class TestRegisterEndpoint:
    """Tests for POST /v1/register."""

    def test_register_success(self, client: TestClient, registration_headers: dict) -> None:
        """Jane Doe registers and is logged in."""
        response = register(client, registration_headers)

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "data": {"message": "Registration successful!", "redirectUrl": "/profile"},
        }
        assert client.cookies.get("session_id")

        profile = client.get("/v1/profile")
        assert profile.status_code == 200
        assert profile.json()["data"]["email"] == "jane@example.com"
        assert profile.json()["data"]["interests"] == ["Music", "Travel"]
        assert "passwordHash" not in profile.json()["data"]

    def test_register_session_cookie_is_not_persistent(
        self, client: TestClient, registration_headers: dict
    ) -> None:
        response = register(client, registration_headers)

        cookie = response.headers["set-cookie"]
        assert "HttpOnly" in cookie
        assert "Max-Age" not in cookie

    def test_register_duplicate_email(self, client: TestClient, registration_headers: dict) -> None:
        register(client, registration_headers)

        response = register(client, registration_headers, email="Jane@Example.com")

        assert response.status_code == 422
        assert response.json()["success"] is False
        assert response.json()["data"]["errors"] == {"email": EMAIL_TAKEN}

    def test_register_errors_use_wire_names(
        self, client: TestClient, registration_headers: dict
    ) -> None:
        response = register(client, registration_headers, full_name="", phone_number="12")

        assert response.status_code == 422
        errors = response.json()["data"]["errors"]
        assert errors["fullName"] == REQUIRED
        assert "phoneNumber" in errors

    def test_register_malformed_body(self, client: TestClient, registration_headers: dict) -> None:
        payload = wire_payload()
        payload["interests"] = 5

        response = client.post("/v1/register", json=payload, headers=registration_headers)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert "interests" in body["data"]["errors"]


class TestLoginEndpoint:
    """Tests for POST /v1/login and /v1/logout."""

    def test_login_success(
        self, client: TestClient, registration_headers: dict, login_headers: dict
    ) -> None:
        register(client, registration_headers)
        client.cookies.clear()

        response = client.post(
            "/v1/login",
            json={"identifier": "jane@example.com", "password": "Secret123!", "remember": False},
            headers=login_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["redirectUrl"] == "/profile"
        assert client.get("/v1/profile").status_code == 200

    def test_remember_me_sets_persistent_cookie(
        self, client: TestClient, registration_headers: dict, login_headers: dict
    ) -> None:
        register(client, registration_headers)

        response = client.post(
            "/v1/login",
            json={"identifier": "jane@example.com", "password": "Secret123!", "remember": True},
            headers=login_headers,
        )

        assert "Max-Age=1209600" in response.headers["set-cookie"]

    def test_failures_are_identical(
        self, client: TestClient, registration_headers: dict, login_headers: dict
    ) -> None:
        """Unknown email and wrong password produce byte-identical responses."""
        register(client, registration_headers)

        unknown = client.post(
            "/v1/login",
            json={"identifier": "nobody@example.com", "password": "Secret123!", "remember": False},
            headers=login_headers,
        )
        wrong = client.post(
            "/v1/login",
            json={"identifier": "jane@example.com", "password": "Nope12345", "remember": False},
            headers=login_headers,
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json() == INVALID_CREDENTIALS

    def test_remember_is_required(self, client: TestClient, login_headers: dict) -> None:
        response = client.post(
            "/v1/login",
            json={"identifier": "jane@example.com", "password": "Secret123!"},
            headers=login_headers,
        )

        assert response.status_code == 422
        assert "remember" in response.json()["data"]["errors"]

    def test_empty_credentials(self, client: TestClient, login_headers: dict) -> None:
        response = client.post(
            "/v1/login",
            json={"identifier": "", "password": "", "remember": False},
            headers=login_headers,
        )

        assert response.status_code == 422
        assert response.json()["data"] == {
            "message": "Please fill in all fields.",
            "errors": {"identifier": REQUIRED, "password": REQUIRED},
        }

    def test_logout(
        self, client: TestClient, registration_headers: dict, login_headers: dict
    ) -> None:
        register(client, registration_headers)
        session_id = client.cookies.get("session_id")

        response = client.post("/v1/logout", headers=login_headers)

        assert response.status_code == 200
        assert response.json()["data"]["redirectUrl"] == "/login"
        denied = client.get("/v1/profile", headers={"Authorization": f"Bearer {session_id}"})
        assert denied.status_code == 401

    def test_logout_without_session(self, client: TestClient, login_headers: dict) -> None:
        response = client.post("/v1/logout", headers=login_headers)

        assert response.status_code == 200


class TestUploadPhoto:
    """Tests for POST /v1/upload_photo."""

    def test_upload_image(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/upload_photo",
            files={"file": ("me.png", b"\x89PNG\r\n", "image/png")},
            headers=registration_headers,
        )

        assert response.status_code == 200
        url = response.json()["data"]["url"]
        assert url.startswith("/media/")
        assert url.endswith(".png")

    def test_upload_four_mib_accepted(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/upload_photo",
            files={"file": ("big.jpg", b"\0" * (4 * 1024 * 1024), "image/jpeg")},
            headers=registration_headers,
        )

        assert response.status_code == 200

    def test_upload_six_mib_rejected(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/upload_photo",
            files={"file": ("huge.jpg", b"\0" * (6 * 1024 * 1024), "image/jpeg")},
            headers=registration_headers,
        )

        assert response.status_code == 422
        assert response.json()["data"]["message"] == PHOTO_TOO_LARGE

    def test_upload_exact_limit_accepted(
        self, client: TestClient, registration_headers: dict
    ) -> None:
        response = client.post(
            "/v1/upload_photo",
            files={"file": ("edge.png", b"\0" * MAX_PHOTO_BYTES, "image/png")},
            headers=registration_headers,
        )

        assert response.status_code == 200

    def test_upload_non_image_rejected(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/upload_photo",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=registration_headers,
        )

        assert response.status_code == 422
        assert response.json()["data"]["message"] == PHOTO_NOT_IMAGE

    def test_storage_failure(
        self, app: FastAPI, client: TestClient, registration_headers: dict
    ) -> None:
        app.state.photo_storage = MagicMock()
        app.state.photo_storage.save.side_effect = OSError("disk full")

        response = client.post(
            "/v1/upload_photo",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
            headers=registration_headers,
        )

        assert response.status_code == 500
        assert response.json()["success"] is False


class TestUpdateProfile:
    """Tests for POST /v1/update_profile and GET /v1/profile."""

    def profile_payload(self, **overrides) -> dict:
        payload = wire_payload(password="", confirm_password="")
        payload.update({"accountId": 1, "changePassword": False})
        payload.update(overrides)
        return payload

    def test_profile_requires_session(self, client: TestClient) -> None:
        response = client.get("/v1/profile")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_update_own_profile(self, client: TestClient, registration_headers: dict) -> None:
        register(client, registration_headers)

        response = client.post(
            "/v1/update_profile",
            json=self.profile_payload(fullName="Jane Smith"),
            headers=registration_headers,
        )

        assert response.status_code == 200
        assert client.get("/v1/profile").json()["data"]["fullName"] == "Jane Smith"

    def test_update_other_account_forbidden(
        self, client: TestClient, registration_headers: dict
    ) -> None:
        register(client, registration_headers)

        response = client.post(
            "/v1/update_profile",
            json=self.profile_payload(accountId=2),
            headers=registration_headers,
        )

        assert response.status_code == 403

    def test_update_without_session(self, client: TestClient, registration_headers: dict) -> None:
        response = client.post(
            "/v1/update_profile", json=self.profile_payload(), headers=registration_headers
        )

        assert response.status_code == 401

    def test_update_validation_errors(self, client: TestClient, registration_headers: dict) -> None:
        register(client, registration_headers)

        response = client.post(
            "/v1/update_profile",
            json=self.profile_payload(changePassword=True, password="short", confirmPassword="short"),
            headers=registration_headers,
        )

        assert response.status_code == 422
        assert "password" in response.json()["data"]["errors"]

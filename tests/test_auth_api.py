"""Tests for the authentication HTTP API."""

from conftest import bearer

AUTH = "/api/v1/auth"


class TestRegisterEndpoint:
    """Tests for POST /auth/register."""

    def test_register_created(self, client):
        """Test that registration returns 201 with user and tokens."""
        response = client.post(
            f"{AUTH}/register",
            json={
                "email": "doc@x.com",
                "password": "secret123",
                "role": "doctor",
                "firstName": "Dana",
                "lastName": "Cruz",
                "specialization": "Cardiology",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registration successful"
        assert body["data"]["user"] == {
            "id": 1,
            "email": "doc@x.com",
            "role": "doctor",
            "firstName": "Dana",
            "lastName": "Cruz",
        }
        assert body["data"]["token"]
        assert body["data"]["refreshToken"]
        assert "passwordHash" not in body["data"]["user"]

    def test_duplicate_email_conflict(self, client, register_user):
        """Test that a second registration with the same email returns 409."""
        register_user("a@x.com", "patient")
        response = client.post(
            f"{AUTH}/register",
            json={
                "email": "a@x.com",
                "password": "secret123",
                "role": "patient",
                "firstName": "A",
                "lastName": "B",
            },
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Email already registered"
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_missing_fields(self, client):
        """Test that missing required fields return 400."""
        response = client.post(f"{AUTH}/register", json={"email": "a@x.com"})

        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields"

    def test_invalid_role(self, client):
        """Test that an unknown role returns 400 listing the valid roles."""
        response = client.post(
            f"{AUTH}/register",
            json={
                "email": "a@x.com",
                "password": "secret123",
                "role": "janitor",
                "firstName": "A",
                "lastName": "B",
            },
        )

        assert response.status_code == 400
        assert "Invalid role" in response.json()["message"]

    def test_rate_limit_headers_present(self, client):
        """Test that auth endpoints advertise their rate limit."""
        response = client.post(f"{AUTH}/register", json={})

        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"


class TestLoginEndpoint:
    """Tests for POST /auth/login."""

    def test_login_success(self, client, register_user):
        """Test that valid credentials return tokens usable on /me."""
        register_user("a@x.com", "patient", firstName="Ada", lastName="Lovelace")
        response = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "secret123"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["role"] == "patient"

        me = client.get(f"{AUTH}/me", headers=bearer(body["data"]["token"]))
        assert me.status_code == 200
        assert me.json()["data"]["firstName"] == "Ada"

    def test_wrong_password_and_unknown_email_identical(self, client, register_user):
        """Test that failed logins are indistinguishable."""
        register_user("a@x.com", "patient")
        wrong = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "nope-nope"})
        unknown = client.post(
            f"{AUTH}/login", json={"email": "ghost@x.com", "password": "secret123"}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Invalid credentials"
        assert wrong.json()["reason"] == unknown.json()["reason"]

    def test_suspended_account_forbidden(self, client, register_user, user_store):
        """Test that a suspended account gets 403."""
        from medportal.core.enums import AccountStatus

        data = register_user("a@x.com", "patient")
        user_store.users[data["user"]["id"]].status = AccountStatus.SUSPENDED

        response = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "secret123"})
        assert response.status_code == 403
        assert response.json()["message"] == "Account is suspended or inactive"

    def test_sixth_attempt_rate_limited(self, client, register_user):
        """Test that the sixth login within the window is rejected with 429."""
        register_user("a@x.com", "patient")
        payload = {"email": "a@x.com", "password": "wrong-pass"}

        for _ in range(5):
            assert client.post(f"{AUTH}/login", json=payload).status_code == 401

        response = client.post(f"{AUTH}/login", json=payload)
        assert response.status_code == 429
        assert response.json()["message"] == "Too many login attempts, please try again later"
        assert response.headers["Retry-After"] == "900"
        assert response.json()["retryAfter"] == 900
        assert "retry_after" not in response.json()
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_rate_limit_disabled(self, settings, cache, user_store, audit_store):
        """Test that disabling rate limiting removes the cap."""
        from fastapi.testclient import TestClient

        from web.app import create_app

        settings.rate_limit_enabled = False
        app = create_app(settings, cache=cache, user_store=user_store, audit_store=audit_store)
        with TestClient(app) as client:
            payload = {"email": "ghost@x.com", "password": "wrong-pass"}
            statuses = {client.post(f"{AUTH}/login", json=payload).status_code for _ in range(7)}

        assert statuses == {401}


class TestTokenEndpoints:
    """Tests for /me, /refresh-token and /logout."""

    def test_me_without_token(self, client):
        """Test that /me without a token is 401 with the no-token message."""
        response = client.get(f"{AUTH}/me")

        assert response.status_code == 401
        assert response.json()["message"] == "No token provided"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_me_with_refresh_token_rejected(self, client, register_user):
        """Test that a refresh token cannot authenticate a request."""
        data = register_user("a@x.com", "patient")
        response = client.get(f"{AUTH}/me", headers=bearer(data["refreshToken"]))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_me_with_malformed_header(self, client, register_user):
        """Test that a non-Bearer header counts as no token."""
        data = register_user("a@x.com", "patient")
        response = client.get(f"{AUTH}/me", headers={"Authorization": f"Token {data['token']}"})

        assert response.status_code == 401
        assert response.json()["message"] == "No token provided"

    def test_refresh_token(self, client, register_user):
        """Test that a refresh token yields a working access token."""
        data = register_user("a@x.com", "patient")
        response = client.post(f"{AUTH}/refresh-token", json={"refreshToken": data["refreshToken"]})

        assert response.status_code == 200
        new_token = response.json()["data"]["token"]
        assert client.get(f"{AUTH}/me", headers=bearer(new_token)).status_code == 200

    def test_refresh_with_access_token_rejected(self, client, register_user):
        """Test that an access token is not accepted for refresh."""
        data = register_user("a@x.com", "patient")
        response = client.post(f"{AUTH}/refresh-token", json={"refreshToken": data["token"]})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"

    def test_logout_revokes_access_token(self, client, register_user):
        """Test that the access token stops working after logout."""
        data = register_user("a@x.com", "patient")
        headers = bearer(data["token"])

        response = client.post(
            f"{AUTH}/logout", json={"refreshToken": data["refreshToken"]}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"

        assert client.get(f"{AUTH}/me", headers=headers).status_code == 401
        refreshed = client.post(f"{AUTH}/refresh-token", json={"refreshToken": data["refreshToken"]})
        assert refreshed.status_code == 401

    def test_logout_without_body(self, client, register_user):
        """Test that logout accepts an empty body."""
        data = register_user("a@x.com", "patient")
        response = client.post(f"{AUTH}/logout", headers=bearer(data["token"]))

        assert response.status_code == 200

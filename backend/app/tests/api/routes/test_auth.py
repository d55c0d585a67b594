"""
Integration tests for authentication API endpoints
Tests registration, verification, login and refresh token flows
"""
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.config import settings
from app.domains.auth import MockEmailSender
from app.tests.utils.auth import (
    DEFAULT_PASSWORD,
    create_test_user,
    get_auth_headers,
    refresh,
    register_and_verify,
)
from app.tests.utils.clock import FakeClock

AUTH = f"{settings.API_V1_STR}/auth"


class TestRegister:
    """Test /auth/register endpoint"""

    def test_register_returns_user_without_tokens(self, client: TestClient, mailer: MockEmailSender):
        response = client.post(
            f"{AUTH}/register",
            json={"email": "Alice@Gmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "alice@gmail.com"
        assert data["user"]["is_verified"] is False
        assert "access_token" not in data
        assert "refresh_token" not in data
        assert "hashed_password" not in data["user"]
        assert mailer.get_last_code("alice@gmail.com") is not None

    def test_register_invalid_input(self, client: TestClient):
        response = client.post(
            f"{AUTH}/register",
            json={"email": "alice@gmail.com", "password": "123", "name": "A"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VAL_6001"
        fields = {f["field"] for f in error["details"]["fields"]}
        assert fields == {"password", "name"}

    def test_register_disposable_email(self, client: TestClient):
        response = client.post(
            f"{AUTH}/register",
            json={"email": "x@yopmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "email"}

    def test_register_verified_email_conflict(self, client: TestClient, session: Session):
        create_test_user(session, email="alice@gmail.com")

        response = client.post(
            f"{AUTH}/register",
            json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )

        assert response.status_code == 409

    def test_register_email_failure(self, client: TestClient, mailer: MockEmailSender):
        mailer.set_fail()

        response = client.post(
            f"{AUTH}/register",
            json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "EXT_5003"


class TestVerifyEmail:
    """Test /auth/verify-email and /auth/resend-verification"""

    def test_verify_returns_tokens(self, client: TestClient, mailer: MockEmailSender):
        data = register_and_verify(client, mailer)

        assert data["user"]["is_verified"] is True
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert len(data["refresh_token"]) == 128

    def test_verify_wrong_code(self, client: TestClient, mailer: MockEmailSender):
        client.post(
            f"{AUTH}/register",
            json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )
        code = mailer.get_last_code("alice@gmail.com")
        wrong = "999999" if code != "999999" else "999998"

        response = client.post(f"{AUTH}/verify-email", json={"email": "alice@gmail.com", "code": wrong})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VCODE_2003"

    def test_verify_malformed_code(self, client: TestClient):
        response = client.post(f"{AUTH}/verify-email", json={"email": "alice@gmail.com", "code": "12ab"})

        assert response.status_code == 400

    def test_verify_unknown_user(self, client: TestClient):
        response = client.post(f"{AUTH}/verify-email", json={"email": "nobody@gmail.com", "code": "123456"})

        assert response.status_code == 404

    def test_resend_supersedes_previous_code(self, client: TestClient, mailer: MockEmailSender):
        client.post(
            f"{AUTH}/register",
            json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
        )
        first = mailer.get_last_code("alice@gmail.com")

        response = client.post(f"{AUTH}/resend-verification", json={"email": "alice@gmail.com"})
        assert response.status_code == 200
        second = mailer.get_last_code("alice@gmail.com")

        if first != second:
            response = client.post(
                f"{AUTH}/verify-email", json={"email": "alice@gmail.com", "code": first}
            )
            assert response.status_code == 400
        response = client.post(
            f"{AUTH}/verify-email", json={"email": "alice@gmail.com", "code": second}
        )
        assert response.status_code == 200


class TestLogin:
    """Test /auth/login endpoint"""

    def test_login_success(self, client: TestClient, session: Session):
        create_test_user(session, email="alice@gmail.com")

        response = client.post(
            f"{AUTH}/login",
            json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD},
            headers={"User-Agent": "pytest-browser"},
        )

        assert response.status_code == 200
        data = response.json()
        sessions = client.get(f"{AUTH}/sessions", headers=get_auth_headers(data["access_token"])).json()
        assert sessions["count"] == 1
        assert sessions["data"][0]["device_info"] == "pytest-browser"
        assert "token" not in sessions["data"][0]

    def test_login_failures_are_indistinguishable(self, client: TestClient, session: Session):
        create_test_user(session, email="alice@gmail.com")

        unknown = client.post(
            f"{AUTH}/login", json={"email": "nobody@gmail.com", "password": DEFAULT_PASSWORD}
        )
        wrong = client.post(
            f"{AUTH}/login", json={"email": "alice@gmail.com", "password": "not-the-password"}
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_login_unverified(self, client: TestClient, session: Session):
        create_test_user(session, email="alice@gmail.com", is_verified=False)

        response = client.post(
            f"{AUTH}/login", json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_1005"


class TestRefreshFlow:
    """Test /auth/refresh rotation and reuse detection"""

    def test_full_session_lifecycle(self, client: TestClient, mailer: MockEmailSender, clock: FakeClock):
        data = register_and_verify(client, mailer)
        r1 = data["refresh_token"]

        clock.advance(seconds=1)
        response = refresh(client, r1)
        assert response.status_code == 200
        r2 = response.json()["refresh_token"]
        access = response.json()["access_token"]
        assert r2 != r1

        # Retry of the same refresh shortly after gets the same successor
        clock.advance(seconds=2)
        retry = refresh(client, r1)
        assert retry.status_code == 200
        assert retry.json()["refresh_token"] == r2

        # A replay long after rotation is theft: everything is revoked
        clock.advance(minutes=5)
        replay = refresh(client, r1)
        assert replay.status_code == 401
        assert replay.json()["error"]["code"] == "AUTH_1006"

        assert refresh(client, r2).status_code == 401
        sessions = client.get(f"{AUTH}/sessions", headers=get_auth_headers(access)).json()
        assert sessions["count"] == 0

    def test_unknown_refresh_token(self, client: TestClient):
        response = refresh(client, "0" * 128)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_1003"

    def test_expired_refresh_token(self, client: TestClient, mailer: MockEmailSender, clock: FakeClock):
        data = register_and_verify(client, mailer)
        clock.advance(days=settings.REFRESH_TOKEN_EXPIRE_DAYS, seconds=1)

        response = refresh(client, data["refresh_token"])

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_1002"


class TestLogout:
    """Test /auth/logout and /auth/logout-all"""

    def test_logout_revokes_refresh_token(self, client: TestClient, mailer: MockEmailSender):
        data = register_and_verify(client, mailer)

        response = client.post(f"{AUTH}/logout", json={"refresh_token": data["refresh_token"]})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert refresh(client, data["refresh_token"]).status_code == 401

    def test_logout_without_body(self, client: TestClient):
        response = client.post(f"{AUTH}/logout")

        assert response.status_code == 200

    def test_logout_all_requires_access_token(self, client: TestClient):
        response = client.post(f"{AUTH}/logout-all")

        assert response.status_code == 401

    def test_logout_all(self, client: TestClient, mailer: MockEmailSender):
        data = register_and_verify(client, mailer)
        client.post(f"{AUTH}/login", json={"email": "alice@gmail.com", "password": DEFAULT_PASSWORD})
        headers = get_auth_headers(data["access_token"])

        response = client.post(f"{AUTH}/logout-all", headers=headers)

        assert response.status_code == 200
        assert client.get(f"{AUTH}/sessions", headers=headers).json()["count"] == 0


class TestMe:
    """Test /auth/me endpoint"""

    def test_me(self, client: TestClient, mailer: MockEmailSender):
        data = register_and_verify(client, mailer)

        response = client.get(f"{AUTH}/me", headers=get_auth_headers(data["access_token"]))

        assert response.status_code == 200
        assert response.json()["email"] == "alice@gmail.com"

    def test_me_with_invalid_token(self, client: TestClient):
        response = client.get(f"{AUTH}/me", headers=get_auth_headers("not-a-jwt"))

        assert response.status_code == 401

    def test_security_headers(self, client: TestClient):
        response = client.get(f"{AUTH}/me")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"

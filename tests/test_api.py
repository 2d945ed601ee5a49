"""
HTTP surface tests via FastAPI's TestClient, against both backends.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from main import create_app

ALICE = {"email": "a@x.com", "password": "secret1", "name": "Alice", "role": "user"}


@pytest.fixture(params=["sqlite", "file"])
def client(request, settings):
    app = create_app(settings.model_copy(update={"storage_backend": request.param}))
    with TestClient(app) as test_client:
        yield test_client


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestPing:
    def test_ping(self, client):
        resp = client.get("/api/ping")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}


class TestRegisterLoginScenario:
    def test_full_scenario(self, client):
        resp = client.post("/api/auth/register", json=ALICE)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["user"] == {"email": "a@x.com", "name": "Alice", "role": "user"}

        me = client.get("/api/auth/me", headers=_bearer(body["token"]))
        assert me.status_code == 200
        assert me.json()["user"]["role"] == "user"

        resp = client.post("/api/auth/login", json={"email": "A@X.com", "password": "secret1"})
        assert resp.status_code == 200
        token = resp.json()["token"]

        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Invalid credentials"}

        assert client.get("/api/auth/list").status_code == 401

        resp = client.get("/api/auth/list", headers=_bearer(token))
        assert resp.status_code == 200
        users = resp.json()["users"]
        assert {"email": "a@x.com", "role": "user"}.items() <= users[0].items()
        assert "passwordHash" not in users[0]
        assert "createdAt" in users[0]

    def test_unknown_email_matches_wrong_password(self, client):
        client.post("/api/auth/register", json=ALICE)
        wrong = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope!!"})
        unknown = client.post("/api/auth/login", json={"email": "z@x.com", "password": "secret1"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()


class TestRegisterFailures:
    def test_duplicate_is_409(self, client):
        client.post("/api/auth/register", json=ALICE)
        resp = client.post("/api/auth/register", json={**ALICE, "email": "A@x.COM"})
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    def test_missing_field_is_400(self, client):
        resp = client.post("/api/auth/register", json={"email": "a@x.com", "password": "secret1"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "All fields are required"

    def test_empty_body_is_400(self, client):
        assert client.post("/api/auth/register").status_code == 400
        assert client.post("/api/auth/login").status_code == 400

    def test_short_password_is_400(self, client):
        resp = client.post("/api/auth/register", json={**ALICE, "password": "123"})
        assert resp.status_code == 400
        assert "at least 6" in resp.json()["message"]

    def test_non_string_field_is_400(self, client):
        resp = client.post("/api/auth/register", json={**ALICE, "email": ["a@x.com"]})
        assert resp.status_code == 400


class TestTokenGate:
    @pytest.mark.parametrize(
        "header",
        ["", "Bearer", "Bearer ", "Token abc", "Bearer not.a.jwt"],
    )
    def test_list_rejects_bad_authorization(self, client, header):
        resp = client.get("/api/auth/list", headers={"Authorization": header} if header else {})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    @pytest.mark.parametrize("scheme", ["bearer", "BEARER", "Bearer"])
    def test_scheme_is_case_insensitive(self, client, scheme):
        token = client.post("/api/auth/register", json=ALICE).json()["token"]
        resp = client.get("/api/auth/list", headers={"Authorization": f"{scheme}  {token} "})
        assert resp.status_code == 200
        assert resp.json()["users"][0]["email"] == "a@x.com"


class TestPasswordReset:
    def test_reset_flow(self, client, caplog):
        client.post("/api/auth/register", json=ALICE)

        with caplog.at_level(logging.INFO, logger="core.otp_service"):
            resp = client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
        assert resp.status_code == 200
        assert "otp" not in resp.json()
        code = next(
            r.args[1] for r in caplog.records if r.name == "core.otp_service" and r.args
        )

        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "a@x.com", "otp": code, "newPassword": "newpass1"},
        )
        assert resp.status_code == 200

        again = client.post(
            "/api/auth/reset-password",
            json={"email": "a@x.com", "otp": code, "newPassword": "newpass2"},
        )
        assert again.status_code == 400
        assert again.json()["message"] == "Invalid OTP"

        assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "newpass1"}).status_code == 200

    def test_forgot_password_unknown_email(self, client):
        resp = client.post("/api/auth/forgot-password", json={"email": "ghost@x.com"})
        assert resp.status_code == 404


class TestConfiguration:
    def test_unknown_backend_refused(self, settings):
        with pytest.raises(ValueError):
            create_app(settings.model_copy(update={"storage_backend": "redis"}))

    def test_default_secret_warns(self, settings, caplog):
        app = create_app(settings.model_copy(update={"jwt_secret": "dev-secret-change-me"}))
        with caplog.at_level(logging.WARNING, logger="main"):
            with TestClient(app):
                pass
        assert any("JWT_SECRET" in r.getMessage() for r in caplog.records)

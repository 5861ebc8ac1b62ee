from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fitting_portal.api.endpoints.admin import decode_admin_token, issue_admin_token
from fitting_portal.settings import settings

URL = "/api/admin/auth"


@pytest.fixture(autouse=True)
def admin_settings(monkeypatch):
    monkeypatch.setattr(settings, "admin_password", "let-me-in")
    monkeypatch.setattr(settings, "jwt_secret", "unit-test-secret")


@pytest.mark.integration
class TestAdminAuth:
    def test_login_and_verify(self, client):
        resp = client.post(URL, json={"password": "let-me-in"})
        assert resp.status_code == 200
        token = resp.json()["token"]

        claims = decode_admin_token(token)
        assert claims["role"] == "admin"
        assert claims["exp"] > claims["iat"]

        resp = client.get(URL, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_password_required(self, client):
        resp = client.post(URL, json={})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Password is required"

    def test_wrong_password(self, client):
        resp = client.post(URL, json={"password": "guess"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid password"

    def test_no_token(self, client):
        resp = client.get(URL)
        assert resp.status_code == 401
        assert resp.json()["message"] == "No token provided"

        resp = client.get(URL, headers={"Authorization": "Basic abc"})
        assert resp.json()["message"] == "No token provided"

    @pytest.mark.parametrize(
        "token",
        [
            "garbage",
            jwt.encode({"role": "admin"}, "another-secret", algorithm="HS256"),
            jwt.encode({"role": "viewer"}, "unit-test-secret", algorithm="HS256"),
        ],
    )
    def test_invalid_token(self, client, token):
        resp = client.get(URL, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token"

    def test_expired_token(self, client):
        token = issue_admin_token(now=datetime.now(timezone.utc) - timedelta(hours=settings.admin_token_ttl_hours + 1))
        resp = client.get(URL, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token"

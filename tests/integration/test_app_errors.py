"""
헬스 체크 및 공통 에러 응답 형식 테스트.
"""

import pytest
from fastapi.testclient import TestClient

from fitting_portal.db import get_session
from fitting_portal.main import app


@pytest.mark.integration
class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_db_ping(self, client):
        resp = client.get("/db/ping")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}


@pytest.mark.integration
class TestErrorEnvelope:
    def test_unknown_route(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Not Found"}

    def test_malformed_json_is_400(self, client):
        resp = client.put(
            "/api/photos/update",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_unexpected_error_is_generic_500(self, client):
        def broken_session():
            raise RuntimeError("database exploded")
            yield  # pragma: no cover

        app.dependency_overrides[get_session] = broken_session
        raw_client = TestClient(app, raise_server_exceptions=False)

        resp = raw_client.get("/api/photos/list")

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Internal server error. Please try again."}
        assert "exploded" not in resp.text

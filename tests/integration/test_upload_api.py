"""
사진 업로드 API 통합 테스트 (TestClient + 메모리 SQLite + 임시 업로드 디렉터리).
"""

import os

import httpx
import pytest
from sqlalchemy import func, select

from fitting_portal.main import app
from fitting_portal.models import Customer, Photo
from fitting_portal.services.webhook_dispatcher import WebhookDispatcher, get_webhook_dispatcher
from fitting_portal.settings import settings

UPLOAD_URL = "/api/upload-photo"


def _upload(client, data: bytes, name="me.jpg", mime="image/jpeg", email="choi@example.com", **form):
    payload = {"customerEmail": email, **form} if email is not None else dict(form)
    return client.post(UPLOAD_URL, files={"photo": (name, data, mime)}, data=payload)


def _stored_files(storage) -> list[str]:
    if not os.path.isdir(storage.upload_dir):
        return []
    return os.listdir(storage.upload_dir)


@pytest.mark.integration
class TestUploadPhoto:
    def test_successful_upload(self, client, test_session, upload_storage, image_bytes):
        resp = _upload(client, image_bytes["jpeg"], email=" Choi@Example.com ", isVirtualFittingPhoto="true")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Photo uploaded successfully"
        data = body["data"]
        assert data["status"] == "pending"
        assert data["customerEmail"] == "choi@example.com"
        assert data["photoUrl"].startswith("/api/photos/serve/")
        assert data["photoUrl"].endswith(".jpg")

        photo = test_session.scalars(select(Photo)).one()
        assert str(photo.id) == data["id"]
        assert photo.original_name == "me.jpg"
        assert photo.file_size == len(image_bytes["jpeg"])
        assert photo.is_virtual_fitting_photo is True
        assert photo.webhook_sent is False
        assert photo.webhook_retries == 0

        stored = _stored_files(upload_storage)
        assert stored == [data["photoUrl"].rsplit("/", 1)[-1]]

    def test_same_email_upserts_one_customer(self, client, test_session, image_bytes):
        assert _upload(client, image_bytes["jpeg"], email="dup@example.com").status_code == 200
        assert _upload(client, image_bytes["png"], name="b.png", mime="image/png", email="DUP@example.com").status_code == 200

        assert test_session.scalar(select(func.count()).select_from(Customer)) == 1
        assert test_session.scalar(select(func.count()).select_from(Photo)) == 2

    def test_signature_mismatch_writes_nothing(self, client, test_session, upload_storage, image_bytes):
        """PNG 내용을 JPEG 로 선언하면 400, DB/파일 모두 기록 없음."""
        resp = _upload(client, image_bytes["png"], name="fake.jpg", mime="image/jpeg")

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "File type does not match content. Security check failed."}
        assert test_session.scalar(select(func.count()).select_from(Photo)) == 0
        assert test_session.scalar(select(func.count()).select_from(Customer)) == 0
        assert _stored_files(upload_storage) == []

    def test_magic_bytes_without_image_rejected(self, client, test_session, upload_storage):
        data = b"\xff\xd8\xff" + b"this is not an image at all" * 10

        resp = _upload(client, data, name="evil.jpg", mime="image/jpeg")

        assert resp.status_code == 400
        assert resp.json()["message"] == "File type does not match content. Security check failed."
        assert test_session.scalar(select(func.count()).select_from(Photo)) == 0
        assert _stored_files(upload_storage) == []

    def test_extension_must_match_content(self, client, image_bytes):
        resp = _upload(client, image_bytes["jpeg"], name="me.png", mime="image/jpeg")
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "email,message",
        [
            (None, "Customer email is required"),
            ("", "Customer email is required"),
            ("not-an-email", "Please provide a valid email address"),
        ],
    )
    def test_email_validation(self, client, image_bytes, email, message):
        resp = _upload(client, image_bytes["jpeg"], email=email)
        assert resp.status_code == 400
        assert resp.json()["message"] == message

    def test_missing_photo(self, client):
        resp = client.post(UPLOAD_URL, data={"customerEmail": "choi@example.com"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Photo file is required"

    def test_disallowed_type(self, client):
        resp = _upload(client, b"GIF89a" + b"\x00" * 10, name="a.gif", mime="image/gif")
        assert resp.status_code == 400
        assert "not allowed" in resp.json()["message"]

    def test_oversized(self, client, monkeypatch, image_bytes):
        monkeypatch.setattr(settings, "max_file_size", 16)
        resp = _upload(client, image_bytes["jpeg"])
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("File size exceeds maximum allowed size")

    def test_rate_limit(self, client):
        """IP 당 한도 초과 시 429 (검증 실패 요청도 카운트)."""
        headers = {"X-Forwarded-For": "203.0.113.10"}
        for _ in range(settings.upload_rate_limit):
            assert client.post(UPLOAD_URL, data={}, headers=headers).status_code == 400

        resp = client.post(UPLOAD_URL, data={}, headers=headers)
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many requests. Please try again later."

        other = client.post(UPLOAD_URL, data={}, headers={"X-Forwarded-For": "203.0.113.11"})
        assert other.status_code == 400

    def test_api_secret_required_when_configured(self, client, monkeypatch, image_bytes):
        monkeypatch.setattr(settings, "api_secret", "portal-secret")

        assert _upload(client, image_bytes["jpeg"]).status_code == 401
        resp = client.post(
            UPLOAD_URL,
            files={"photo": ("me.jpg", image_bytes["jpeg"], "image/jpeg")},
            data={"customerEmail": "choi@example.com"},
            headers={"X-API-Secret": "portal-secret"},
        )
        assert resp.status_code == 200


@pytest.mark.integration
def test_upload_dispatches_webhook_in_background(client, test_session, image_bytes):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    dispatcher = WebhookDispatcher(
        url="https://hooks.example.com/photo",
        transport=httpx.MockTransport(handler),
        sleep=lambda seconds: None,
    )
    app.dependency_overrides[get_webhook_dispatcher] = lambda: dispatcher

    resp = _upload(client, image_bytes["webp"], name="me.webp", mime="image/webp")
    assert resp.status_code == 200

    assert len(calls) == 1
    photo = test_session.scalars(select(Photo)).one()
    test_session.refresh(photo)
    assert photo.webhook_sent is True
    assert photo.webhook_retries == 0


@pytest.mark.integration
def test_upload_succeeds_when_webhook_keeps_failing(client, test_session, image_bytes):
    calls = []
    sleeps = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    dispatcher = WebhookDispatcher(
        url="https://hooks.example.com/photo",
        max_retries=3,
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
    )
    app.dependency_overrides[get_webhook_dispatcher] = lambda: dispatcher

    resp = _upload(client, image_bytes["jpeg"])

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["data"]["status"] == "pending"
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]

    photo = test_session.scalars(select(Photo)).one()
    test_session.refresh(photo)
    assert photo.webhook_sent is False
    assert photo.webhook_retries == 3

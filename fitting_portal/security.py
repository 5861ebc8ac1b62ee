import hashlib
import hmac
import logging
import re

from fastapi import Header, HTTPException, Query, Request

from fitting_portal.settings import settings

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_MAX_EMAIL_LENGTH = 254


def sanitize_email(email: object) -> str | None:
    """앞뒤 공백 제거 + 소문자화 후 형식 검증. 유효하지 않으면 None."""
    if not isinstance(email, str):
        return None
    sanitized = email.strip().lower()
    if len(sanitized) > _MAX_EMAIL_LENGTH or not _EMAIL_RE.match(sanitized):
        return None
    return sanitized


def require_email(raw: str | None, label: str = "Customer email") -> str:
    if not raw or not isinstance(raw, str) or not raw.strip():
        raise HTTPException(status_code=400, detail=f"{label} is required")
    email = sanitize_email(raw)
    if not email:
        raise HTTPException(status_code=400, detail="Please provide a valid email address")
    return email


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def verify_api_secret(
    x_api_secret: str | None = Header(default=None),
    api_secret: str | None = Query(default=None, alias="apiSecret", include_in_schema=False),
) -> None:
    """settings.api_secret 이 비어 있으면 검사하지 않는다."""
    expected = settings.api_secret
    if not expected:
        return
    provided = x_api_secret or api_secret or ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("API secret mismatch")
        raise HTTPException(status_code=401, detail="Unauthorized")


def file_sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()

import hmac
import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel

from fitting_portal.settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class AdminAuthIn(BaseModel):
    password: str | None = None


def issue_admin_token(now: datetime | None = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "role": "admin",
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.admin_token_ttl_hours),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_admin_token(token: str) -> dict:
    """
    서명/만료를 검증하고 role=admin 인 클레임만 통과시킵니다.
    실패 시 jwt.InvalidTokenError 를 그대로 올립니다.
    """
    claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    if claims.get("role") != "admin":
        raise jwt.InvalidTokenError("role is not admin")
    return claims


@router.post("/auth")
def login(payload: AdminAuthIn) -> dict:
    if not payload.password:
        raise HTTPException(status_code=400, detail="Password is required")

    if not hmac.compare_digest(payload.password.encode(), settings.admin_password.encode()):
        logger.warning("Admin login failed: invalid password")
        raise HTTPException(status_code=401, detail="Invalid password")

    logger.info("Admin login succeeded")
    return {"success": True, "token": issue_admin_token()}


@router.get("/auth")
def verify(authorization: str | None = Header(default=None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided")

    token = authorization[len("Bearer "):].strip()
    try:
        decode_admin_token(token)
    except jwt.InvalidTokenError as e:
        logger.info(f"Admin token rejected: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    return {"success": True}

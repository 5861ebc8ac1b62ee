from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from fitting_portal.db import get_session

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/db/ping")
def db_ping(session: Session = Depends(get_session)) -> dict:
    value = session.execute(text("SELECT 1")).scalar_one()
    return {"ok": value == 1}

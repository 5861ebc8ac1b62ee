import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fitting_portal.db import get_session
from fitting_portal.schemas.customer import (
    BodyMeasurementsIn,
    CustomerProfileIn,
    customer_summary,
    customer_to_dict,
    measurements_to_dict,
)
from fitting_portal.schemas.order import order_to_dict
from fitting_portal.schemas.photo import photo_to_dict
from fitting_portal.security import require_email, verify_api_secret
from fitting_portal.services import customer_service

router = APIRouter(dependencies=[Depends(verify_api_secret)])
logger = logging.getLogger(__name__)


@router.post("/profile")
def save_profile(payload: CustomerProfileIn, session: Session = Depends(get_session)) -> dict:
    email = require_email(payload.email, label="Email")

    customer = customer_service.upsert_customer(session, email, payload.profile_fields())
    logger.info(f"Customer profile updated: {customer.email}")

    return {
        "success": True,
        "message": "Customer profile updated successfully",
        "data": customer_summary(customer),
    }


@router.get("/profile")
def get_profile(
    email: str | None = Query(default=None),
    session: Session = Depends(get_session),
) -> dict:
    sanitized = require_email(email, label="Email")

    customer = customer_service.get_customer(session, sanitized)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")

    measurements = customer.body_measurements
    data = {
        **customer_to_dict(customer),
        "bodyMeasurements": measurements_to_dict(measurements) if measurements else None,
        "photos": [photo_to_dict(p) for p in customer_service.recent_photos(session, sanitized)],
        "shopifyOrders": [order_to_dict(o) for o in customer_service.recent_orders(session, sanitized)],
    }
    return {"success": True, "data": data}


@router.post("/measurements")
def save_measurements(payload: BodyMeasurementsIn, session: Session = Depends(get_session)) -> dict:
    email = require_email(payload.customer_email)

    record = customer_service.upsert_measurements(session, email, payload.measurement_values())
    logger.info(f"Body measurements updated for: {email}")

    return {
        "success": True,
        "message": "Body measurements updated successfully",
        "data": measurements_to_dict(record),
    }


@router.get("/measurements")
def get_measurements(
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    session: Session = Depends(get_session),
) -> dict:
    email = require_email(customer_email)

    record = customer_service.get_measurements(session, email)
    if record is None:
        raise HTTPException(status_code=404, detail="Measurements not found")

    return {"success": True, "data": measurements_to_dict(record)}

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fitting_portal.models import MEASUREMENT_FIELDS, BodyMeasurements, Customer, Photo, ShopifyOrder

logger = logging.getLogger(__name__)

PROFILE_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "phone_number",
    "date_of_birth",
    "age",
    "hobbies",
    "occupation",
    "usual_size",
    "custom_fields",
)


def get_customer(session: Session, email: str) -> Customer | None:
    return session.execute(select(Customer).where(Customer.email == email)).scalar_one_or_none()


def upsert_customer(session: Session, email: str, fields: dict[str, Any] | None = None) -> Customer:
    """
    이메일 기준으로 고객을 생성하거나 갱신합니다.
    fields 에 포함된 키만 덮어쓰고, 없는 키는 기존 값을 유지합니다.
    """
    fields = {k: v for k, v in (fields or {}).items() if k in PROFILE_FIELDS}

    customer = get_customer(session, email)
    if customer is None:
        customer = Customer(email=email, **fields)
        session.add(customer)
        session.flush()
        logger.info(f"Customer created: {email}")
        return customer

    for key, value in fields.items():
        setattr(customer, key, value)
    session.flush()
    return customer


def ensure_customer(session: Session, email: str) -> Customer:
    return upsert_customer(session, email)


def get_measurements(session: Session, email: str) -> BodyMeasurements | None:
    return session.execute(
        select(BodyMeasurements).where(BodyMeasurements.customer_email == email)
    ).scalar_one_or_none()


def upsert_measurements(session: Session, email: str, values: dict[str, float | None]) -> BodyMeasurements:
    """
    치수 레코드 전체를 저장합니다. values 에 없는 항목은 None 으로 초기화됩니다.
    """
    ensure_customer(session, email)

    record = get_measurements(session, email)
    if record is None:
        record = BodyMeasurements(customer_email=email)
        session.add(record)

    for name in MEASUREMENT_FIELDS:
        setattr(record, name, values.get(name))

    session.flush()
    return record


def recent_photos(session: Session, email: str, limit: int = 5) -> list[Photo]:
    stmt = (
        select(Photo)
        .where(Photo.customer_email == email)
        .order_by(Photo.created_at.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt).all())


def recent_orders(session: Session, email: str, limit: int = 5) -> list[ShopifyOrder]:
    stmt = (
        select(ShopifyOrder)
        .where(ShopifyOrder.customer_email == email)
        .order_by(ShopifyOrder.order_date.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt).all())

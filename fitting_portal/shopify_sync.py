from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fitting_portal.models import ShopifyOrder
from fitting_portal.services import customer_service
from fitting_portal.shopify_client import ShopifyClient

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        except ValueError:
            logger.warning(f"Unparseable Shopify datetime: {value}")
    return datetime.now(timezone.utc)


def _parse_price(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def order_values(order: dict[str, Any], fallback_email: str) -> dict[str, Any]:
    email = (order.get("email") or fallback_email).strip().lower()
    return {
        "shopify_order_id": str(order.get("id")),
        "customer_email": email,
        "order_number": str(order.get("order_number") or ""),
        "total_price": _parse_price(order.get("total_price")),
        "currency": order.get("currency") or "",
        "order_status": order.get("financial_status") or "unknown",
        "fulfillment_status": order.get("fulfillment_status"),
        "order_date": _parse_datetime(order.get("created_at")),
        "order_data": order,
    }


def upsert_order(session: Session, values: dict[str, Any]) -> ShopifyOrder:
    customer_service.ensure_customer(session, values["customer_email"])

    existing = session.execute(
        select(ShopifyOrder).where(ShopifyOrder.shopify_order_id == values["shopify_order_id"])
    ).scalar_one_or_none()

    if existing:
        for key, value in values.items():
            setattr(existing, key, value)
        session.flush()
        return existing

    order = ShopifyOrder(**values)
    session.add(order)
    session.flush()
    return order


def sync_customer_orders(session: Session, client: ShopifyClient, email: str) -> int:
    """
    Shopify 주문을 조회해 shopify_order_id 기준으로 upsert 하고,
    첫 주문의 고객 정보(이름/전화/Shopify ID)를 고객 프로필에 반영합니다.
    """
    orders = client.get_orders_by_customer_email(email)

    synced = 0
    for order in orders:
        if not order.get("id"):
            continue
        upsert_order(session, order_values(order, email))
        synced += 1

    if orders and isinstance(orders[0].get("customer"), dict):
        shop_customer = orders[0]["customer"]
        fields: dict[str, Any] = {}
        if shop_customer.get("first_name"):
            fields["first_name"] = shop_customer["first_name"]
        if shop_customer.get("last_name"):
            fields["last_name"] = shop_customer["last_name"]
        if shop_customer.get("phone"):
            fields["phone_number"] = shop_customer["phone"]
        customer = customer_service.upsert_customer(session, email, fields)
        if shop_customer.get("id"):
            customer.shopify_customer_id = str(shop_customer["id"])
            session.flush()

    logger.info(f"Shopify orders synced for {email}: {synced}")
    return synced


def list_orders(session: Session, email: str, limit: int = 10) -> list[ShopifyOrder]:
    stmt = (
        select(ShopifyOrder)
        .where(ShopifyOrder.customer_email == email)
        .order_by(ShopifyOrder.order_date.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt).all())

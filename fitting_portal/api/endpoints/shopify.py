import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fitting_portal.db import get_session
from fitting_portal.schemas.order import order_to_dict
from fitting_portal.security import require_email, verify_api_secret
from fitting_portal.shopify_client import ShopifyClient, ShopifyError, get_shopify_client
from fitting_portal.shopify_sync import list_orders, sync_customer_orders

router = APIRouter()
logger = logging.getLogger(__name__)


def _customer_summary(client: ShopifyClient, customer: dict) -> dict:
    return {
        "id": customer.get("id"),
        "email": customer.get("email"),
        "firstName": customer.get("first_name"),
        "lastName": customer.get("last_name"),
        "phone": customer.get("phone"),
        "ordersCount": customer.get("orders_count"),
        "totalSpent": customer.get("total_spent"),
        "adminUrl": client.customer_admin_url(customer.get("id")),
    }


@router.get("/orders", dependencies=[Depends(verify_api_secret)])
def get_orders(
    session: Session = Depends(get_session),
    client: ShopifyClient | None = Depends(get_shopify_client),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    sync: bool = Query(default=False),
) -> dict:
    if client is None:
        raise HTTPException(status_code=503, detail="Shopify integration not configured")

    email = require_email(customer_email)

    if sync:
        try:
            sync_customer_orders(session, client, email)
        except ShopifyError as e:
            logger.error(f"Shopify sync error for {email}: {e}")
            raise HTTPException(status_code=502, detail="Failed to sync orders from Shopify")

        orders = list_orders(session, email)
        return {
            "success": True,
            "message": "Orders synced successfully",
            "data": {
                "orders": [order_to_dict(o) for o in orders],
                "syncedAt": datetime.now(timezone.utc).isoformat(),
            },
        }

    orders = list_orders(session, email)

    shopify_customer = None
    try:
        shopify_customer = client.get_customer_by_email(email)
    except ShopifyError as e:
        logger.warning(f"Could not fetch Shopify customer {email}: {e}")

    return {
        "success": True,
        "data": {
            "orders": [order_to_dict(o) for o in orders],
            "shopifyCustomer": _customer_summary(client, shopify_customer) if shopify_customer else None,
        },
    }

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fitting_portal.settings import settings

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    "id,order_number,email,created_at,updated_at,total_price,currency,financial_status,"
    "fulfillment_status,line_items,customer,admin_graphql_api_id"
)


class ShopifyError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShopifyNotConfiguredError(ShopifyError):
    pass


class ShopifyClient:
    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._shop_domain = shop_domain.strip().rstrip("/")
        self._access_token = access_token
        self._api_version = api_version or "2024-01"
        self._transport = transport

    @property
    def shop_domain(self) -> str:
        return self._shop_domain

    def _api_url(self, endpoint: str) -> str:
        return f"https://{self._shop_domain}/admin/api/{self._api_version}/{endpoint.lstrip('/')}"

    @retry(
        stop=stop_after_attempt(settings.shopify_retry_count),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Shopify request retry ({retry_state.attempt_number}): {retry_state.outcome.exception()}"
        ),
    )
    def _send(self, method: str, endpoint: str, params: dict[str, Any] | None = None) -> httpx.Response:
        headers = {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
        }
        timeout = httpx.Timeout(30.0, connect=10.0)
        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            return client.request(method, self._api_url(endpoint), headers=headers, params=params)

    def _request(self, method: str, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            resp = self._send(method, endpoint, params)
        except httpx.HTTPError as e:
            raise ShopifyError(f"Shopify request failed: {e}") from e

        if resp.status_code >= 400:
            raise ShopifyError(f"Shopify API error: {resp.status_code} - {resp.text[:500]}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ShopifyError("Shopify API returned a non-JSON response", status_code=resp.status_code) from e
        return data if isinstance(data, dict) else {}

    def get_customer_by_email(self, email: str) -> dict[str, Any] | None:
        data = self._request("GET", "customers/search.json", params={"query": f"email:{email}"})
        customers = data.get("customers") or []
        return customers[0] if customers else None

    def get_customer_by_id(self, customer_id: str) -> dict[str, Any] | None:
        data = self._request("GET", f"customers/{customer_id}.json")
        return data.get("customer")

    def get_orders_by_customer_email(self, email: str, limit: int = 10) -> list[dict[str, Any]]:
        data = self._request(
            "GET",
            "orders.json",
            params={"status": "any", "limit": limit, "fields": ORDER_FIELDS, "email": email},
        )
        return list(data.get("orders") or [])

    def get_order_by_id(self, order_id: str) -> dict[str, Any] | None:
        data = self._request("GET", f"orders/{order_id}.json", params={"fields": ORDER_FIELDS})
        return data.get("order")

    def validate_connection(self) -> bool:
        try:
            self._request("GET", "shop.json")
            return True
        except ShopifyError as e:
            logger.error(f"Shopify connection validation failed: {e}")
            return False

    def customer_admin_url(self, customer_id: str | int) -> str:
        return f"https://{self._shop_domain}/admin/customers/{customer_id}"

    def order_admin_url(self, order_id: str | int) -> str:
        return f"https://{self._shop_domain}/admin/orders/{order_id}"


def create_shopify_client() -> ShopifyClient | None:
    if not settings.shopify_configured():
        logger.warning("Shopify integration not configured. Missing SHOPIFY_SHOP_DOMAIN or SHOPIFY_ACCESS_TOKEN")
        return None
    return ShopifyClient(
        shop_domain=settings.shopify_shop_domain,
        access_token=settings.shopify_access_token,
        api_version=settings.shopify_api_version,
    )


def get_shopify_client() -> ShopifyClient | None:
    return create_shopify_client()

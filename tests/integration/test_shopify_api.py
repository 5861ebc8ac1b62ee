import httpx
import pytest

from fitting_portal.main import app
from fitting_portal.shopify_client import ShopifyClient, get_shopify_client

URL = "/api/shopify/orders"

ORDER = {
    "id": 9001,
    "order_number": 2001,
    "email": "yoon@example.com",
    "created_at": "2024-05-10T09:00:00Z",
    "total_price": "120.00",
    "currency": "KRW",
    "financial_status": "paid",
    "fulfillment_status": "fulfilled",
    "customer": {"id": 42, "first_name": "Jisoo", "last_name": "Yoon"},
}


def _use_client(handler) -> None:
    client = ShopifyClient("demo.myshopify.com", "shpat_test", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_shopify_client] = lambda: client


def _shop_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/orders.json"):
        return httpx.Response(200, json={"orders": [ORDER]})
    if request.url.path.endswith("/customers/search.json"):
        return httpx.Response(200, json={"customers": [{"id": 42, "email": "yoon@example.com", "orders_count": 1}]})
    return httpx.Response(404)


@pytest.mark.integration
class TestShopifyOrdersApi:
    def test_not_configured(self, client):
        resp = client.get(URL, params={"customerEmail": "yoon@example.com"})
        assert resp.status_code == 503
        assert resp.json() == {"success": False, "message": "Shopify integration not configured"}

    def test_sync(self, client):
        _use_client(_shop_handler)

        resp = client.get(URL, params={"customerEmail": "yoon@example.com", "sync": "true"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["syncedAt"]
        assert len(data["orders"]) == 1
        order = data["orders"][0]
        assert order["shopifyOrderId"] == "9001"
        assert order["orderNumber"] == "2001"
        assert order["totalPrice"] == 120.0
        assert order["orderStatus"] == "paid"

        profile = client.get("/api/customer/profile", params={"email": "yoon@example.com"}).json()["data"]
        assert profile["firstName"] == "Jisoo"
        assert profile["shopifyCustomerId"] == "42"
        assert len(profile["shopifyOrders"]) == 1

    def test_sync_failure_returns_502(self, client):
        _use_client(lambda request: httpx.Response(500, text="oops"))

        resp = client.get(URL, params={"customerEmail": "yoon@example.com", "sync": "true"})

        assert resp.status_code == 502
        assert resp.json()["message"] == "Failed to sync orders from Shopify"

    def test_cached_orders_with_customer_summary(self, client):
        _use_client(_shop_handler)
        client.get(URL, params={"customerEmail": "yoon@example.com", "sync": "true"})

        resp = client.get(URL, params={"customerEmail": "yoon@example.com"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data["orders"]) == 1
        assert data["shopifyCustomer"]["id"] == 42
        assert data["shopifyCustomer"]["adminUrl"] == "https://demo.myshopify.com/admin/customers/42"

    def test_customer_lookup_failure_is_not_fatal(self, client):
        def handler(request):
            if request.url.path.endswith("/customers/search.json"):
                return httpx.Response(500)
            return _shop_handler(request)

        _use_client(handler)
        resp = client.get(URL, params={"customerEmail": "yoon@example.com"})

        assert resp.status_code == 200
        assert resp.json()["data"] == {"orders": [], "shopifyCustomer": None}

    def test_email_required(self, client):
        _use_client(_shop_handler)
        resp = client.get(URL)
        assert resp.status_code == 400

from fitting_portal.models import ShopifyOrder


def order_to_dict(order: ShopifyOrder) -> dict:
    return {
        "id": str(order.id),
        "shopifyOrderId": order.shopify_order_id,
        "customerEmail": order.customer_email,
        "orderNumber": order.order_number,
        "totalPrice": order.total_price,
        "currency": order.currency,
        "orderStatus": order.order_status,
        "fulfillmentStatus": order.fulfillment_status,
        "orderDate": order.order_date.isoformat() if order.order_date else None,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }

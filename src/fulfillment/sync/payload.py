"""Translate an Order into the carrier's adhoc order request body."""

from datetime import UTC, datetime

from fulfillment.order.order import Order
from fulfillment.order.packaging import Package

DEFAULT_COUNTRY = "India"
DEFAULT_EMAIL = "customer@example.com"


def _line(item) -> dict:
    return {
        "name": item.name,
        "sku": item.sku or f"SKU-{item.product_id}",
        "units": item.quantity,
        "selling_price": item.unit_price,
        "discount": 0,
        "tax": 0,
        "hsn": 0,
    }


def build_carrier_payload(order: Order, package: Package, pickup_location: str = "Primary", channel_id: str = "") -> dict:
    """Billing is the shipping address; payment mode follows the local payment status."""
    address = order.shipping_address
    totals = order.totals
    placed_on = order.created_at or datetime.now(UTC)

    return {
        "order_id": order.order_number,
        "order_date": placed_on.strftime("%Y-%m-%d"),
        "pickup_location": pickup_location,
        "channel_id": channel_id,
        "comment": f"Order {order.order_number}",
        "billing_customer_name": address.first_name,
        "billing_last_name": address.last_name or "",
        "billing_address": address.address_line1,
        "billing_address_2": address.address_line2 or "",
        "billing_city": address.city,
        "billing_pincode": address.postal_code,
        "billing_state": address.state or "",
        "billing_country": address.country or DEFAULT_COUNTRY,
        "billing_email": address.email or DEFAULT_EMAIL,
        "billing_phone": address.phone or "",
        "shipping_is_billing": True,
        "order_items": [_line(item) for item in order.items],
        "payment_method": "Prepaid" if order.is_paid else "COD",
        "shipping_charges": totals.shipping_cost if totals else 0,
        "giftwrap_charges": 0,
        "transaction_charges": 0,
        "total_discount": 0,
        "sub_total": totals.subtotal if totals else 0,
        **package.to_dict(),
    }

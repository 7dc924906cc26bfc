"""Shared BDD fixtures and step definitions for carrier sync."""

import pytest
from fulfillment.order.order import Order
from pytest_bdd import given, parsers, then

_ADDRESS = {
    "first_name": "Kiran",
    "address_line1": "9 Residency Road",
    "city": "Chennai",
    "postal_code": "600001",
}

_ITEMS = [
    {"product_id": "prod-bdd", "name": "Cotton Saree", "sku": "CS-RED", "quantity": 1, "unit_price": 2499.0},
]


@pytest.fixture()
def error():
    """Container for a captured pipeline error."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an order with a waybill", target_fixture="order")
def order_with_waybill():
    order = Order.create(order_number="ORD-BDD-1", items_data=_ITEMS, shipping_address=_ADDRESS)
    order.record_payment_captured("pay_bdd")
    order.record_remote_order("700001", "800001", "NEW")
    order.record_waybill("AWBBDD1", "Delhivery", "12")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the remote status is "{remote_status}"'))
def remote_status_is(order, remote_status):
    assert order.remote_status == remote_status

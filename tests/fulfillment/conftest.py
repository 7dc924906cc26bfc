import os

import pytest

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="session")
def _fulfillment_domain(request):
    """Initialize the fulfillment domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from fulfillment.domain import fulfillment

    fulfillment.init()
    return fulfillment


@pytest.fixture(scope="session", autouse=True)
def setup_db(_fulfillment_domain):
    from fulfillment.utils.db import drop_db, setup_db

    setup_db(_fulfillment_domain)

    yield

    drop_db(_fulfillment_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_fulfillment_domain, monkeypatch):
    """Push domain context and a fresh fake carrier before each test, cleanup after."""
    monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.delenv("CARRIER_WEBHOOK_TOKEN", raising=False)
    monkeypatch.setenv("CARRIER_ADAPTER", "fake")

    from fulfillment.carrier import reset_carrier

    reset_carrier()

    ctx = _fulfillment_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    ctx.pop()
    reset_carrier()


@pytest.fixture()
def carrier():
    """The FakeCarrier every orchestrator in the test will use."""
    from fulfillment.carrier import get_carrier

    return get_carrier()


DEFAULT_ADDRESS = {
    "first_name": "Asha",
    "last_name": "Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "country": "India",
}

DEFAULT_ITEMS = [
    {"product_id": "prod-a", "name": "Linen Shirt", "sku": "LS-M-BLU", "size": "M", "color": "Blue", "quantity": 2, "unit_price": 1200.0},
    {"product_id": "prod-b", "name": "Canvas Tote", "quantity": 1, "unit_price": 450.0},
]


@pytest.fixture()
def make_order():
    """Place an order through the PlaceOrder command and return the stored aggregate."""
    import json

    from fulfillment.order.order import Order
    from fulfillment.order.placement import PlaceOrder
    from protean import current_domain

    counter = {"n": 0}

    def _make(items=None, payment_reference=None, order_number=None, totals=None):
        counter["n"] += 1
        n = counter["n"]
        order_id = current_domain.process(
            PlaceOrder(
                order_number=order_number or f"ORD-{1000 + n}",
                customer_id=f"cust-{n}",
                items=json.dumps(items or DEFAULT_ITEMS),
                shipping_address=json.dumps(DEFAULT_ADDRESS),
                totals=json.dumps(totals) if totals else None,
                payment_reference=payment_reference or f"order_rzp_{n}",
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _make


@pytest.fixture()
def paid_order(make_order):
    """An order whose payment has been captured but that is not yet synced."""
    from fulfillment.order.order import Order
    from protean import current_domain

    order = make_order()
    order.record_payment_captured("pay_001")
    current_domain.repository_for(Order).add(order)
    return current_domain.repository_for(Order).get(order.id)


@pytest.fixture()
def load_order():
    """Re-read an order from its repository."""
    from fulfillment.order.order import Order
    from protean import current_domain

    def _load(order_id):
        return current_domain.repository_for(Order).get(str(order_id))

    return _load


@pytest.fixture()
def log_entries():
    """Fulfillment log rows of an order, oldest first."""
    from fulfillment.audit.log_entry import FulfillmentLogEntry
    from protean import current_domain

    def _entries(order_id, action=None):
        return current_domain.repository_for(FulfillmentLogEntry).for_order(str(order_id), action=action)

    return _entries


@pytest.fixture()
def webhook_secret():
    return WEBHOOK_SECRET

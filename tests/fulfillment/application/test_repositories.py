"""Application tests for the order and fulfillment log repositories."""

from fulfillment.audit.log_entry import FulfillmentLogEntry, LogAction, LogOutcome
from fulfillment.order.order import Order
from protean import current_domain

_ADDRESS = {"first_name": "Nisha", "address_line1": "3 Hill Road", "city": "Mumbai", "postal_code": "400050"}
_ITEMS = [{"product_id": "prod-r", "name": "Scarf", "quantity": 1, "unit_price": 300.0}]


def _confirmed_order(number, remote_shipment_id=None):
    order = Order.create(order_number=f"ORD-R{number}", items_data=_ITEMS, shipping_address=_ADDRESS)
    order.record_payment_captured(f"pay_r{number}")
    if remote_shipment_id:
        order.record_remote_order(f"R{number}", remote_shipment_id, "NEW")
    current_domain.repository_for(Order).add(order)
    return order


class TestFulfillmentLog:
    def test_every_entry_of_a_long_trail_is_returned(self, log_entries):
        for n in range(130):
            FulfillmentLogEntry.record("ord-long", LogAction.TRACK_SHIPMENT, LogOutcome.SUCCESS, request={"n": n})

        entries = log_entries("ord-long")

        assert len(entries) == 130
        assert entries[0].request == {"n": 0}
        assert entries[-1].request == {"n": 129}

    def test_entries_are_oldest_first(self, log_entries):
        FulfillmentLogEntry.record("ord-1", LogAction.CREATE_ORDER, LogOutcome.PENDING)
        FulfillmentLogEntry.record("ord-1", LogAction.CREATE_ORDER, LogOutcome.SUCCESS)

        assert [e.outcome for e in log_entries("ord-1")] == ["pending", "success"]


class TestAwaitingWaybill:
    def test_found_behind_many_unsynced_orders(self):
        for n in range(110):
            _confirmed_order(n)
        waiting = _confirmed_order(999, remote_shipment_id="S999")

        pending = current_domain.repository_for(Order).awaiting_waybill()

        assert [str(o.id) for o in pending] == [str(waiting.id)]

    def test_limit_applies_to_waiting_orders(self):
        for n in range(3):
            _confirmed_order(n, remote_shipment_id=f"S{n}")

        pending = current_domain.repository_for(Order).awaiting_waybill(limit=2)

        assert [o.remote_shipment_id for o in pending] == ["S0", "S1"]

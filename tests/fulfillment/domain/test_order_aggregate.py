"""Tests for the Order aggregate — payment, sync fields and forward-only status."""

import pytest
from fulfillment.order.events import (
    CarrierStatusUpdated,
    OrderPaymentCaptured,
    OrderPaymentFailed,
    OrderPlaced,
    PickupScheduled,
    RemoteOrderCreated,
    WaybillAssigned,
)
from fulfillment.order.order import Order, OrderStatus, PaymentStatus, SyncState
from protean.exceptions import ValidationError

_ADDRESS = {
    "first_name": "Asha",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "postal_code": "560001",
}


def _make_order(**kwargs):
    return Order.create(
        order_number=kwargs.pop("order_number", "ORD-1"),
        items_data=kwargs.pop(
            "items_data",
            [{"product_id": "prod-1", "name": "Shirt", "quantity": 2, "unit_price": 500.0}],
        ),
        shipping_address=kwargs.pop("shipping_address", _ADDRESS),
        payment_reference="order_rzp_1",
        **kwargs,
    )


def _synced_order():
    order = _make_order()
    order.record_payment_captured("pay_1")
    order.record_remote_order("R-1", "S-1", "NEW")
    return order


class TestOrderCreation:
    def test_new_order_is_pending_and_unpaid(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.sync_state == SyncState.UNSYNCED

    def test_line_subtotals_and_totals_are_derived(self):
        order = _make_order()
        assert order.items[0].subtotal == 1000.0
        assert order.totals.subtotal == 1000.0
        assert order.totals.total == 1000.0

    def test_explicit_totals_are_kept(self):
        order = _make_order(totals={"subtotal": 1000.0, "tax": 180.0, "shipping_cost": 50.0, "total": 1230.0})
        assert order.totals.total == 1230.0

    def test_order_without_items_is_rejected(self):
        with pytest.raises(ValidationError):
            _make_order(items_data=[])

    def test_country_defaults_to_india(self):
        assert _make_order().shipping_address.country == "India"

    def test_raises_order_placed(self):
        order = _make_order()
        assert isinstance(order._events[-1], OrderPlaced)
        assert order._events[-1].item_count == 1


class TestPayment:
    def test_capture_confirms_the_order(self):
        order = _make_order()
        order.record_payment_captured("pay_1")

        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_id == "pay_1"
        assert order.paid_at is not None
        assert isinstance(order._events[-1], OrderPaymentCaptured)

    def test_repeated_capture_keeps_first_paid_at(self):
        order = _make_order()
        order.record_payment_captured("pay_1")
        first_paid_at = order.paid_at

        order.record_payment_captured("pay_1")

        assert order.paid_at == first_paid_at

    def test_failure_marks_payment_failed(self):
        order = _make_order()
        assert order.record_payment_failed("pay_1") is True

        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.status == OrderStatus.PAYMENT_FAILED.value
        assert isinstance(order._events[-1], OrderPaymentFailed)

    def test_capture_after_failure_confirms(self):
        order = _make_order()
        order.record_payment_failed("pay_1")
        order.record_payment_captured("pay_2")

        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_failure_after_capture_is_ignored(self):
        order = _make_order()
        order.record_payment_captured("pay_1")

        assert order.record_payment_failed("pay_2") is False
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.CONFIRMED.value


class TestCarrierSync:
    def test_remote_order_is_recorded(self):
        order = _synced_order()

        assert order.remote_order_id == "R-1"
        assert order.remote_shipment_id == "S-1"
        assert order.remote_status == "NEW"
        assert order.synced_at is not None
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.sync_state == SyncState.ORDER_CREATED
        assert isinstance(order._events[-1], RemoteOrderCreated)

    def test_second_remote_order_is_refused(self):
        order = _synced_order()

        with pytest.raises(ValidationError) as exc:
            order.record_remote_order("R-2", "S-2")

        assert "remote_order_id" in exc.value.messages
        assert order.remote_order_id == "R-1"

    def test_waybill_moves_order_to_processing(self):
        order = _synced_order()
        order.record_waybill("AWB1", "Delhivery", "12")

        assert order.awb_number == "AWB1"
        assert order.courier_name == "Delhivery"
        assert order.status == OrderStatus.PROCESSING.value
        assert order.sync_state == SyncState.AWB_ASSIGNED
        assert isinstance(order._events[-1], WaybillAssigned)

    def test_waybill_needs_a_remote_shipment(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.record_waybill("AWB1")

    def test_pickup_moves_order_to_ready_to_ship(self):
        order = _synced_order()
        order.record_waybill("AWB1")
        order.record_pickup_scheduled()

        assert order.status == OrderStatus.READY_TO_SHIP.value
        assert order.pickup_scheduled_at is not None
        assert order.sync_state == SyncState.PICKUP_SCHEDULED
        assert isinstance(order._events[-1], PickupScheduled)

    def test_pickup_needs_a_remote_shipment(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.record_pickup_scheduled()

    def test_status_never_moves_backwards(self):
        order = _synced_order()
        order.record_waybill("AWB1")
        order.record_pickup_scheduled()

        order.apply_carrier_status("IN TRANSIT", OrderStatus.SHIPPED)
        order.apply_carrier_status("PICKUP SCHEDULED", OrderStatus.READY_TO_SHIP)

        assert order.status == OrderStatus.SHIPPED.value
        assert order.remote_status == "PICKUP SCHEDULED"


class TestCarrierStatus:
    def test_delivery_stamps_shipped_and_delivered_once(self):
        order = _synced_order()
        order.record_waybill("AWB1")

        order.apply_carrier_status("IN TRANSIT", OrderStatus.SHIPPED)
        shipped_at = order.shipped_at
        order.apply_carrier_status("DELIVERED", OrderStatus.DELIVERED)
        delivered_at = order.delivered_at
        order.apply_carrier_status("DELIVERED", OrderStatus.DELIVERED)

        assert order.status == OrderStatus.DELIVERED.value
        assert order.shipped_at == shipped_at
        assert order.delivered_at == delivered_at
        assert isinstance(order._events[-1], CarrierStatusUpdated)

    def test_unmapped_status_only_records_remote_status(self):
        order = _synced_order()
        order.apply_carrier_status("RTO IN TRANSIT", None)

        assert order.status == OrderStatus.CONFIRMED.value
        assert order.remote_status == "RTO IN TRANSIT"

    def test_cancellation_is_applied_before_delivery(self):
        order = _synced_order()
        order.apply_carrier_status("CANCELLED", OrderStatus.CANCELLED)
        assert order.status == OrderStatus.CANCELLED.value

    def test_delivered_order_is_not_cancelled(self):
        order = _synced_order()
        order.record_waybill("AWB1")
        order.apply_carrier_status("DELIVERED", OrderStatus.DELIVERED)

        order.apply_carrier_status("CANCELLED", OrderStatus.CANCELLED)

        assert order.status == OrderStatus.DELIVERED.value

    def test_missing_waybill_and_courier_are_filled_in(self):
        order = _synced_order()
        order.apply_carrier_status("PICKED UP", OrderStatus.SHIPPED, awb_number="AWB9", courier_name="Bluedart")

        assert order.awb_number == "AWB9"
        assert order.courier_name == "Bluedart"

    def test_payment_on_cancelled_order_is_refused(self):
        order = _synced_order()
        order.apply_carrier_status("CANCELLED", OrderStatus.CANCELLED)

        with pytest.raises(ValidationError):
            order.record_payment_captured("pay_2")

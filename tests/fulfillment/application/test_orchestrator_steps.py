"""Application tests for the waybill, pickup, tracking and cancel steps."""

import pytest
from fulfillment.config import CarrierConfig
from fulfillment.exceptions import CarrierError, PreconditionError
from fulfillment.order.order import OrderStatus
from fulfillment.sync.orchestrator import FulfillmentOrchestrator


@pytest.fixture()
def orchestrator(carrier):
    return FulfillmentOrchestrator(carrier=carrier, config=CarrierConfig())


@pytest.fixture()
def synced_without_awb(orchestrator, carrier, paid_order):
    """An order the carrier accepted whose waybill assignment failed."""
    carrier.configure(should_succeed=False, operation="assign_waybill")
    orchestrator.sync_order(str(paid_order.id))
    carrier.configure(should_succeed=True, operation="assign_waybill")
    return paid_order


@pytest.fixture()
def synced_order(orchestrator, paid_order):
    orchestrator.sync_order(str(paid_order.id))
    return paid_order


class TestAssignWaybill:
    def test_retry_assigns_waybill(self, orchestrator, synced_without_awb, load_order):
        waybill = orchestrator.assign_waybill(str(synced_without_awb.id))

        order = load_order(synced_without_awb.id)
        assert waybill is not None
        assert order.awb_number == waybill.awb_code
        assert order.courier_id == "1"
        assert order.status == OrderStatus.PROCESSING.value

    def test_failure_returns_none(self, orchestrator, carrier, synced_without_awb):
        carrier.configure(should_succeed=False, operation="assign_waybill")

        assert orchestrator.assign_waybill(str(synced_without_awb.id)) is None

    def test_requires_a_remote_shipment(self, orchestrator, paid_order, log_entries):
        with pytest.raises(PreconditionError):
            orchestrator.assign_waybill(str(paid_order.id))

        assert [e.outcome for e in log_entries(paid_order.id, action="generate_awb")] == ["error"]

    def test_existing_waybill_is_returned_without_calling_carrier(self, orchestrator, carrier, synced_order, load_order):
        calls_before = len(carrier.calls_to("assign_waybill"))

        waybill = orchestrator.assign_waybill(str(synced_order.id))

        assert waybill.awb_code == load_order(synced_order.id).awb_number
        assert len(carrier.calls_to("assign_waybill")) == calls_before


class TestWaybillSweep:
    def test_sweep_assigns_pending_waybills(self, orchestrator, synced_without_awb, load_order):
        result = orchestrator.retry_missing_waybills()

        assert result == {"attempted": 1, "assigned": 1}
        assert load_order(synced_without_awb.id).awb_number is not None

    def test_sweep_counts_failures(self, orchestrator, carrier, synced_without_awb):
        carrier.configure(should_succeed=False, operation="assign_waybill")

        assert orchestrator.retry_missing_waybills() == {"attempted": 1, "assigned": 0}

    def test_sweep_skips_orders_with_waybills(self, orchestrator, synced_order):
        assert orchestrator.retry_missing_waybills() == {"attempted": 0, "assigned": 0}


class TestSchedulePickup:
    def test_pickup_moves_order_to_ready_to_ship(self, orchestrator, carrier, synced_order, load_order, log_entries):
        orchestrator.schedule_pickup(str(synced_order.id))

        order = load_order(synced_order.id)
        assert order.status == OrderStatus.READY_TO_SHIP.value
        assert order.pickup_scheduled_at is not None
        assert carrier.calls_to("schedule_pickup") == [[order.remote_shipment_id]]
        assert [e.outcome for e in log_entries(synced_order.id, action="schedule_pickup")] == ["pending", "success"]

    def test_requires_a_remote_shipment(self, orchestrator, carrier, paid_order, log_entries):
        with pytest.raises(PreconditionError):
            orchestrator.schedule_pickup(str(paid_order.id))

        assert carrier.calls_to("schedule_pickup") == []
        assert [e.outcome for e in log_entries(paid_order.id, action="schedule_pickup")] == ["error"]

    def test_carrier_failure_leaves_order_in_last_good_state(
        self, orchestrator, carrier, synced_order, load_order, log_entries
    ):
        carrier.configure(should_succeed=False, failure_reason="Pickup slots full", operation="schedule_pickup")

        with pytest.raises(CarrierError):
            orchestrator.schedule_pickup(str(synced_order.id))

        order = load_order(synced_order.id)
        assert order.status == OrderStatus.PROCESSING.value
        assert order.pickup_scheduled_at is None
        entries = log_entries(synced_order.id, action="schedule_pickup")
        assert [e.outcome for e in entries] == ["pending", "error"]
        assert entries[-1].error_message == "Pickup slots full"


class TestTrackAndCancel:
    def test_tracking_updates_the_order(self, orchestrator, synced_order, load_order):
        tracking = orchestrator.track_shipment(str(synced_order.id))

        order = load_order(synced_order.id)
        assert tracking.current_status == "IN TRANSIT"
        assert order.remote_status == "IN TRANSIT"
        assert order.status == OrderStatus.SHIPPED.value
        assert order.expected_delivery_at is not None

    def test_tracking_needs_a_waybill(self, orchestrator, paid_order):
        with pytest.raises(PreconditionError):
            orchestrator.track_shipment(str(paid_order.id))

    def test_cancel_uses_the_remote_order_id(self, orchestrator, carrier, synced_order, load_order):
        orchestrator.cancel_shipment(str(synced_order.id))

        order = load_order(synced_order.id)
        assert carrier.calls_to("cancel_shipment") == [[order.remote_order_id]]
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancel_failure_is_logged_and_raised(self, orchestrator, carrier, synced_order, load_order, log_entries):
        carrier.configure(should_succeed=False, operation="cancel_shipment")

        with pytest.raises(CarrierError):
            orchestrator.cancel_shipment(str(synced_order.id))

        assert load_order(synced_order.id).status == OrderStatus.PROCESSING.value
        assert [e.outcome for e in log_entries(synced_order.id, action="cancel_shipment")] == ["pending", "error"]

    def test_cancel_needs_a_synced_order(self, orchestrator, paid_order):
        with pytest.raises(PreconditionError):
            orchestrator.cancel_shipment(str(paid_order.id))

"""Fake carrier adapter — deterministic carrier for testing and development.

Generates sequential remote ids and waybills and records every call.
Each operation can be told to fail with a given error.
"""

from datetime import UTC, datetime, timedelta
from itertools import count

from fulfillment.carrier.port import CarrierGateway, RemoteOrder, TrackingStatus, Waybill
from fulfillment.exceptions import AWBAssignmentError, CarrierError


class FakeCarrier(CarrierGateway):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self._failures: dict[str, Exception] = {}
        self._sequence = count(1)
        self.assign_awb_on_create = False

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        operation: str | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the fake carrier behavior for testing.

        With ``operation`` only that method fails; otherwise every method does.
        ``error`` replaces the default ``CarrierError``.
        """
        operations = [operation] if operation else [
            "authenticate",
            "create_remote_order",
            "assign_waybill",
            "schedule_pickup",
            "track_shipment",
            "cancel_shipment",
        ]
        for name in operations:
            if should_succeed:
                self._failures.pop(name, None)
            else:
                self._failures[name] = error or CarrierError(failure_reason, status_code=503)

    @property
    def failing_operations(self) -> list[str]:
        return sorted(self._failures)

    def calls_to(self, operation: str) -> list:
        return [args for name, args in self.calls if name == operation]

    def _call(self, operation: str, args) -> None:
        self.calls.append((operation, args))
        failure = self._failures.get(operation)
        if failure is not None:
            raise failure

    def authenticate(self) -> str:
        self._call("authenticate", None)
        return "fake-token"

    def create_remote_order(self, payload: dict) -> RemoteOrder:
        self._call("create_remote_order", payload)
        n = next(self._sequence)
        body = {
            "order_id": 100000 + n,
            "shipment_id": 200000 + n,
            "status": "NEW",
        }
        if self.assign_awb_on_create:
            body["awb_code"] = f"FAKEAWB{n:06d}"
        return RemoteOrder(
            remote_order_id=str(body["order_id"]),
            remote_shipment_id=str(body["shipment_id"]),
            status=body["status"],
            awb_code=body.get("awb_code"),
            raw=body,
        )

    def assign_waybill(self, remote_shipment_id: str) -> Waybill:
        self._call("assign_waybill", remote_shipment_id)
        if not remote_shipment_id:
            raise AWBAssignmentError("No shipment id given")
        body = {"awb_code": f"FAKEAWB{remote_shipment_id}", "courier_name": "Fake Express", "courier_company_id": 1}
        return Waybill(awb_code=body["awb_code"], courier_name="Fake Express", courier_id="1", raw=body)

    def schedule_pickup(self, remote_shipment_ids: list[str]) -> dict:
        self._call("schedule_pickup", list(remote_shipment_ids))
        pickup_at = datetime.now(UTC) + timedelta(days=1)
        return {
            "pickup_status": 1,
            "response": {"pickup_scheduled_date": pickup_at.isoformat(), "data": "Pickup queued"},
        }

    def track_shipment(self, awb: str) -> TrackingStatus:
        self._call("track_shipment", awb)
        return TrackingStatus(
            awb=awb,
            current_status="IN TRANSIT",
            expected_delivery=(datetime.now(UTC) + timedelta(days=3)).isoformat(),
            activities=[{"activity": "Shipment picked up", "location": "Origin hub"}],
        )

    def cancel_shipment(self, remote_ids: list[str]) -> dict:
        self._call("cancel_shipment", list(remote_ids))
        return {"status": 200, "message": "Order cancelled successfully"}

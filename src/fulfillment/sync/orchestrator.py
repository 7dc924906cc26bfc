"""Fulfillment orchestrator — drives a paid order through the carrier.

    unsynced → order_created → awb_assigned → pickup_scheduled

Every carrier call is bracketed by fulfillment log rows: ``pending``
before, ``success`` or ``error`` after. Log rows and order updates are
persisted one by one, outside any unit of work, so a failing step never
takes the audit trail down with it.

Creating the remote order is the only step that must not happen twice.
It is guarded by the presence of ``remote_order_id``, checked under a
per-order lock. Waybill and pickup failures are soft: they are logged and
the order keeps its last good state until the step is re-invoked.
"""

import threading
import weakref
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from fulfillment.audit.log_entry import FulfillmentLogEntry, LogAction, LogOutcome
from fulfillment.carrier import get_carrier
from fulfillment.carrier.port import CarrierGateway, TrackingStatus, Waybill
from fulfillment.config import CarrierConfig
from fulfillment.exceptions import CarrierError, NotFoundError, PreconditionError
from fulfillment.order.order import Order, OrderStatus
from fulfillment.order.packaging import compute_package
from fulfillment.sync.payload import build_carrier_payload
from fulfillment.sync.tracking import map_carrier_status, parse_carrier_datetime

logger = structlog.get_logger(__name__)

_locks_guard = threading.Lock()
# Entries vanish once no caller holds the lock.
_order_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()


def _lock_for(order_id: str) -> threading.Lock:
    with _locks_guard:
        lock = _order_locks.get(str(order_id))
        if lock is None:
            lock = _order_locks[str(order_id)] = threading.Lock()
        return lock


@dataclass(frozen=True)
class SyncResult:
    order_id: str
    already_synced: bool
    remote_order_id: str | None = None
    remote_shipment_id: str | None = None
    awb_code: str | None = None

    @property
    def message(self) -> str:
        return "already synced" if self.already_synced else "synced"


def _error_response(exc: Exception) -> dict | None:
    return exc.to_dict() if isinstance(exc, CarrierError) else None


class FulfillmentOrchestrator:
    def __init__(self, carrier: CarrierGateway | None = None, config: CarrierConfig | None = None):
        self.carrier = carrier or get_carrier()
        self.config = config or CarrierConfig.from_env()

    @staticmethod
    def _repo():
        return current_domain.repository_for(Order)

    def _load(self, order_id: str) -> Order:
        try:
            return self._repo().get(order_id)
        except ObjectNotFoundError:
            raise NotFoundError(f"Order {order_id} not found") from None

    # -------------------------------------------------------------------
    # Remote order creation
    # -------------------------------------------------------------------
    def sync_order(self, order_id: str) -> SyncResult:
        """Create the carrier order for ``order_id`` unless one already exists.

        Carrier failures are logged and re-raised with the order untouched,
        so calling again retries from scratch. When the carrier returns a
        shipment id, a waybill is requested in the same call.
        """
        with _lock_for(order_id):
            order = self._load(order_id)
            if order.remote_order_id:
                logger.info(
                    "Order already synced with carrier",
                    order_id=order_id,
                    remote_order_id=order.remote_order_id,
                )
                return SyncResult(
                    order_id=order_id,
                    already_synced=True,
                    remote_order_id=order.remote_order_id,
                    remote_shipment_id=order.remote_shipment_id,
                    awb_code=order.awb_number,
                )

            package = compute_package(order.items)
            payload = build_carrier_payload(
                order,
                package,
                pickup_location=self.config.pickup_location,
                channel_id=self.config.channel_id,
            )
            FulfillmentLogEntry.record(order_id, LogAction.CREATE_ORDER, LogOutcome.PENDING, request=payload)

            try:
                remote = self.carrier.create_remote_order(payload)
            except Exception as exc:
                FulfillmentLogEntry.record(
                    order_id,
                    LogAction.CREATE_ORDER,
                    LogOutcome.ERROR,
                    request=payload,
                    response=_error_response(exc),
                    error=str(exc),
                )
                logger.error("Carrier order creation failed", order_id=order_id, error=str(exc))
                raise

            try:
                order.record_remote_order(remote.remote_order_id, remote.remote_shipment_id, remote.status)
                if remote.awb_code and remote.remote_shipment_id:
                    order.record_waybill(remote.awb_code)
                self._repo().add(order)
            except Exception as exc:
                # The carrier holds an order we failed to record; keep its ids for reconciliation.
                FulfillmentLogEntry.record(
                    order_id,
                    LogAction.CREATE_ORDER,
                    LogOutcome.ERROR,
                    request=payload,
                    response=remote.raw,
                    error=f"Carrier order {remote.remote_order_id} created but not saved: {exc}",
                )
                logger.error(
                    "Carrier order created but not saved",
                    order_id=order_id,
                    remote_order_id=remote.remote_order_id,
                    error=str(exc),
                )
                raise

            FulfillmentLogEntry.record(
                order_id,
                LogAction.CREATE_ORDER,
                LogOutcome.SUCCESS,
                request=payload,
                response=remote.raw,
            )
            logger.info(
                "Carrier order created",
                order_id=order_id,
                remote_order_id=remote.remote_order_id,
                remote_shipment_id=remote.remote_shipment_id,
            )

        awb_code = remote.awb_code if remote.remote_shipment_id else None
        if remote.remote_shipment_id and not awb_code:
            waybill = self.assign_waybill(order_id, remote.remote_shipment_id)
            awb_code = waybill.awb_code if waybill else None

        return SyncResult(
            order_id=order_id,
            already_synced=False,
            remote_order_id=remote.remote_order_id,
            remote_shipment_id=remote.remote_shipment_id,
            awb_code=awb_code,
        )

    # -------------------------------------------------------------------
    # Waybill
    # -------------------------------------------------------------------
    def assign_waybill(self, order_id: str, remote_shipment_id: str | None = None) -> Waybill | None:
        """Request a waybill; returns None when the carrier cannot assign one."""
        order = self._load(order_id)
        shipment_id = remote_shipment_id or order.remote_shipment_id
        if not shipment_id:
            message = "Cannot assign a waybill before the carrier shipment exists"
            FulfillmentLogEntry.record(order_id, LogAction.GENERATE_AWB, LogOutcome.ERROR, error=message)
            raise PreconditionError(message)

        if order.awb_number:
            logger.info("Waybill already assigned", order_id=order_id, awb=order.awb_number)
            return Waybill(awb_code=order.awb_number, courier_name=order.courier_name, courier_id=order.courier_id)

        request = {"shipment_id": shipment_id}
        FulfillmentLogEntry.record(order_id, LogAction.GENERATE_AWB, LogOutcome.PENDING, request=request)

        try:
            waybill = self.carrier.assign_waybill(shipment_id)
        except CarrierError as exc:
            FulfillmentLogEntry.record(
                order_id,
                LogAction.GENERATE_AWB,
                LogOutcome.ERROR,
                request=request,
                response=exc.to_dict(),
                error=exc.message,
            )
            logger.warning("Waybill assignment failed", order_id=order_id, error=exc.message)
            return None

        order.record_waybill(waybill.awb_code, waybill.courier_name, waybill.courier_id)
        self._repo().add(order)
        FulfillmentLogEntry.record(
            order_id,
            LogAction.GENERATE_AWB,
            LogOutcome.SUCCESS,
            request=request,
            response=waybill.raw or {"awb_code": waybill.awb_code},
        )
        logger.info("Waybill assigned", order_id=order_id, awb=waybill.awb_code, courier=waybill.courier_name)
        return waybill

    def retry_missing_waybills(self, limit: int = 50) -> dict:
        """Sweep orders the carrier accepted but that still lack a waybill."""
        pending = self._repo().awaiting_waybill(limit=limit)
        assigned = 0
        for order in pending:
            if self.assign_waybill(str(order.id)) is not None:
                assigned += 1

        logger.info("Waybill sweep finished", attempted=len(pending), assigned=assigned)
        return {"attempted": len(pending), "assigned": assigned}

    # -------------------------------------------------------------------
    # Pickup
    # -------------------------------------------------------------------
    def schedule_pickup(self, order_id: str) -> dict:
        order = self._load(order_id)
        if not order.remote_shipment_id:
            message = "Cannot schedule pickup before the carrier shipment exists"
            FulfillmentLogEntry.record(order_id, LogAction.SCHEDULE_PICKUP, LogOutcome.ERROR, error=message)
            raise PreconditionError(message)

        request = {"shipment_id": [order.remote_shipment_id]}
        FulfillmentLogEntry.record(order_id, LogAction.SCHEDULE_PICKUP, LogOutcome.PENDING, request=request)

        try:
            response = self.carrier.schedule_pickup([order.remote_shipment_id])
        except CarrierError as exc:
            FulfillmentLogEntry.record(
                order_id,
                LogAction.SCHEDULE_PICKUP,
                LogOutcome.ERROR,
                request=request,
                response=exc.to_dict(),
                error=exc.message,
            )
            logger.warning("Pickup scheduling failed", order_id=order_id, error=exc.message)
            raise

        order.record_pickup_scheduled()
        self._repo().add(order)
        FulfillmentLogEntry.record(
            order_id,
            LogAction.SCHEDULE_PICKUP,
            LogOutcome.SUCCESS,
            request=request,
            response=response,
        )
        logger.info("Pickup scheduled", order_id=order_id, remote_shipment_id=order.remote_shipment_id)
        return response

    # -------------------------------------------------------------------
    # Tracking and cancellation
    # -------------------------------------------------------------------
    def track_shipment(self, order_id: str) -> TrackingStatus:
        """Poll the carrier for the order's shipment and record what it reports."""
        order = self._load(order_id)
        if not order.awb_number:
            raise PreconditionError("Order has no waybill to track")

        request = {"awb": order.awb_number}
        FulfillmentLogEntry.record(order_id, LogAction.TRACK_SHIPMENT, LogOutcome.PENDING, request=request)
        try:
            tracking = self.carrier.track_shipment(order.awb_number)
        except CarrierError as exc:
            FulfillmentLogEntry.record(
                order_id,
                LogAction.TRACK_SHIPMENT,
                LogOutcome.ERROR,
                request=request,
                response=exc.to_dict(),
                error=exc.message,
            )
            raise

        if tracking.current_status:
            order.apply_carrier_status(
                tracking.current_status,
                map_carrier_status(tracking.current_status),
                expected_delivery_at=parse_carrier_datetime(tracking.expected_delivery),
            )
            self._repo().add(order)

        FulfillmentLogEntry.record(
            order_id,
            LogAction.TRACK_SHIPMENT,
            LogOutcome.SUCCESS,
            request=request,
            response=tracking.raw or {"current_status": tracking.current_status},
        )
        return tracking

    def cancel_shipment(self, order_id: str) -> dict:
        order = self._load(order_id)
        if not order.remote_order_id:
            raise PreconditionError("Order has not been synced with the carrier")

        request = {"ids": [order.remote_order_id]}
        FulfillmentLogEntry.record(order_id, LogAction.CANCEL_SHIPMENT, LogOutcome.PENDING, request=request)
        try:
            response = self.carrier.cancel_shipment([order.remote_order_id])
        except CarrierError as exc:
            FulfillmentLogEntry.record(
                order_id,
                LogAction.CANCEL_SHIPMENT,
                LogOutcome.ERROR,
                request=request,
                response=exc.to_dict(),
                error=exc.message,
            )
            raise

        order.apply_carrier_status("CANCELLED", OrderStatus.CANCELLED)
        self._repo().add(order)
        FulfillmentLogEntry.record(
            order_id,
            LogAction.CANCEL_SHIPMENT,
            LogOutcome.SUCCESS,
            request=request,
            response=response,
        )
        logger.info("Carrier shipment cancelled", order_id=order_id, remote_order_id=order.remote_order_id)
        return response

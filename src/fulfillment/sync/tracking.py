"""Carrier shipment statuses and how they fold into an Order.

Used both when an operator polls tracking and when the carrier pushes a
status webhook.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from fulfillment.audit.log_entry import FulfillmentLogEntry, LogAction, LogOutcome
from fulfillment.exceptions import NotFoundError
from fulfillment.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

_STATUS_MAP = {
    "PICKUP SCHEDULED": OrderStatus.READY_TO_SHIP,
    "PICKED UP": OrderStatus.SHIPPED,
    "SHIPPED": OrderStatus.SHIPPED,
    "IN TRANSIT": OrderStatus.SHIPPED,
    "OUT FOR DELIVERY": OrderStatus.SHIPPED,
    "DELIVERED": OrderStatus.DELIVERED,
    "CANCELLED": OrderStatus.CANCELLED,
    "CANCELED": OrderStatus.CANCELLED,
}

_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d", "%d %b %Y")


def map_carrier_status(remote_status: str | None) -> OrderStatus | None:
    """Local status for a carrier status, or None when there is no equivalent.

    Returns (RTO), lost and damaged shipments have no local status; the
    remote status is still recorded on the order.
    """
    if not remote_status:
        return None
    return _STATUS_MAP.get(remote_status.strip().upper().replace("_", " "))


def parse_carrier_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = None
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        logger.warning("Unparseable carrier date", value=value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class CarrierStatusWebhook:
    """Applies a carrier's status push to the matching order."""

    def handle(self, payload: dict) -> Order:
        repo = current_domain.repository_for(Order)

        order = None
        order_number = payload.get("order_id")
        awb = payload.get("awb")
        if order_number:
            order = repo.find_by_order_number(str(order_number))
        if order is None and awb:
            order = repo.find_by_awb(str(awb))
        if order is None:
            raise NotFoundError(f"No order for carrier update (order {order_number}, awb {awb})")

        remote_status = payload.get("current_status") or payload.get("shipment_status") or ""
        order.apply_carrier_status(
            remote_status,
            map_carrier_status(remote_status),
            awb_number=str(awb) if awb else None,
            courier_name=payload.get("courier_name"),
            expected_delivery_at=parse_carrier_datetime(payload.get("etd")),
        )
        repo.add(order)

        FulfillmentLogEntry.record(
            order.id,
            LogAction.WEBHOOK_RECEIVED,
            LogOutcome.SUCCESS,
            request=payload,
            response={"status": order.status, "remote_status": remote_status},
        )
        logger.info(
            "Carrier status applied",
            order_id=str(order.id),
            remote_status=remote_status,
            status=order.status,
        )
        return order

"""Order events — facts about payment confirmation and carrier sync.

All events are past tense and versioned.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Order")
class OrderPlaced:
    """Checkout completed and the order was handed to fulfillment."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier()
    item_count = Integer(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderPaymentCaptured:
    """The payment provider confirmed the money was captured."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String()
    payment_id = String(required=True)
    paid_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderPaymentFailed:
    """The payment provider reported a failed payment attempt."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String()
    payment_id = String()
    failed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class RemoteOrderCreated:
    """The carrier accepted the order and assigned it remote ids."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    remote_order_id = String(required=True)
    remote_shipment_id = String()
    remote_status = String()
    synced_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class WaybillAssigned:
    """A courier and tracking waybill were assigned to the shipment."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    awb_number = String(required=True)
    courier_name = String()
    courier_id = String()
    assigned_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class PickupScheduled:
    """The carrier agreed to collect the package."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    remote_shipment_id = String(required=True)
    scheduled_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class CarrierStatusUpdated:
    """The carrier pushed a new shipment status for the order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    remote_status = String(required=True)
    status = String(required=True)
    awb_number = String()
    updated_at = DateTime(required=True)

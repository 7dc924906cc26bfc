"""Order aggregate (CQRS) — the storefront order as fulfillment sees it.

Checkout creates the order; the payment webhook records the payment
outcome; the sync orchestrator records what the carrier assigned. Orders
are never deleted, only moved forward.

Fulfillment status:
    PENDING → CONFIRMED → PROCESSING → READY_TO_SHIP → SHIPPED → DELIVERED
    PENDING → PAYMENT_FAILED → CONFIRMED (a later capture still confirms)
    any non-terminal status → CANCELLED

Sync state (derived from the sync fields):
    unsynced → order_created → awb_assigned → pickup_scheduled
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from fulfillment.domain import fulfillment
from fulfillment.order.events import (
    CarrierStatusUpdated,
    OrderPaymentCaptured,
    OrderPaymentFailed,
    OrderPlaced,
    PickupScheduled,
    RemoteOrderCreated,
    WaybillAssigned,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PAYMENT_FAILED = "payment_failed"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class SyncState(Enum):
    UNSYNCED = "unsynced"
    ORDER_CREATED = "order_created"
    AWB_ASSIGNED = "awb_assigned"
    PICKUP_SCHEDULED = "pickup_scheduled"


# Forward progress of an order. Statuses sharing a rank are alternatives.
_STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.PAYMENT_FAILED: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.READY_TO_SHIP: 3,
    OrderStatus.SHIPPED: 4,
    OrderStatus.DELIVERED: 5,
}

_TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address captured at checkout. Also used as the billing address."""

    first_name = String(required=True, max_length=100)
    last_name = String(max_length=100)
    email = String(max_length=255)
    phone = String(max_length=20)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@fulfillment.value_object(part_of="Order")
class OrderTotals:
    subtotal = Float(min_value=0.0, default=0.0)
    tax = Float(min_value=0.0, default=0.0)
    shipping_cost = Float(min_value=0.0, default=0.0)
    total = Float(min_value=0.0, default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Order")
class LineItem:
    """One product line as it was bought."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    image_url = String(max_length=500)
    size = String(max_length=50)
    color = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    subtotal = Float(min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    customer_id = Identifier()
    items = HasMany(LineItem)
    totals = ValueObject(OrderTotals)
    shipping_address = ValueObject(ShippingAddress)

    # Payment
    payment_method = String(max_length=50, default="razorpay")
    payment_status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    payment_reference = String(max_length=100)  # provider order id
    payment_id = String(max_length=100)
    paid_at = DateTime()

    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )

    # Carrier sync
    remote_order_id = String(max_length=100)
    remote_shipment_id = String(max_length=100)
    remote_status = String(max_length=100)
    awb_number = String(max_length=100)
    courier_name = String(max_length=255)
    courier_id = String(max_length=50)
    pickup_scheduled_at = DateTime()
    synced_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    expected_delivery_at = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def awb_requires_remote_shipment(self):
        if self.awb_number and not self.remote_shipment_id:
            raise ValidationError({"awb_number": ["A waybill needs a remote shipment"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number: str,
        items_data: list[dict],
        shipping_address: dict,
        customer_id: str | None = None,
        totals: dict | None = None,
        payment_method: str = "razorpay",
        payment_reference: str | None = None,
    ):
        """Create an order from a completed checkout."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one line item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method,
            payment_reference=payment_reference,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            data = dict(item_data)
            if data.get("subtotal") is None:
                data["subtotal"] = round(data["unit_price"] * data["quantity"], 2)
            order.add_items(LineItem(**data))

        if totals:
            order.totals = OrderTotals(**totals)
        else:
            subtotal = round(sum(i.subtotal for i in order.items), 2)
            order.totals = OrderTotals(subtotal=subtotal, total=subtotal)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=customer_id,
                item_count=len(order.items),
                total=order.totals.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def sync_state(self) -> SyncState:
        if self.pickup_scheduled_at:
            return SyncState.PICKUP_SCHEDULED
        if self.awb_number:
            return SyncState.AWB_ASSIGNED
        if self.remote_order_id:
            return SyncState.ORDER_CREATED
        return SyncState.UNSYNCED

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def _advance_to(self, target: OrderStatus) -> bool:
        """Move the fulfillment status forward; never backwards."""
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATUSES:
            return False
        if _STATUS_RANK[target] <= _STATUS_RANK[current]:
            return False
        self.status = target.value
        return True

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_captured(self, payment_id: str, paid_at: datetime | None = None) -> None:
        """Mark the order paid and confirmed.

        A repeated capture notice keeps the first ``paid_at``.
        """
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Cannot record a payment on a cancelled order"]})

        now = datetime.now(UTC)
        if not self.is_paid:
            self.paid_at = paid_at or now
        self.payment_status = PaymentStatus.PAID.value
        self.payment_id = payment_id
        self._advance_to(OrderStatus.CONFIRMED)
        self.updated_at = now
        self.raise_(
            OrderPaymentCaptured(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                payment_id=payment_id,
                paid_at=self.paid_at,
            )
        )

    def record_payment_failed(self, payment_id: str | None = None) -> bool:
        """Mark the payment failed. Returns False if the order is already paid."""
        if self.is_paid:
            return False

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        if OrderStatus(self.status) in (OrderStatus.PENDING, OrderStatus.PAYMENT_FAILED):
            self.status = OrderStatus.PAYMENT_FAILED.value
        self.updated_at = now
        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                payment_id=payment_id,
                failed_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Carrier sync
    # -------------------------------------------------------------------
    def record_remote_order(
        self,
        remote_order_id: str,
        remote_shipment_id: str | None = None,
        remote_status: str | None = None,
    ) -> None:
        """Record the ids the carrier assigned to this order."""
        if self.remote_order_id:
            raise ValidationError(
                {"remote_order_id": [f"Order is already synced as remote order {self.remote_order_id}"]}
            )

        now = datetime.now(UTC)
        self.remote_order_id = remote_order_id
        self.remote_shipment_id = remote_shipment_id
        self.remote_status = remote_status
        self.synced_at = now
        self._advance_to(OrderStatus.CONFIRMED)
        self.updated_at = now
        self.raise_(
            RemoteOrderCreated(
                order_id=str(self.id),
                remote_order_id=remote_order_id,
                remote_shipment_id=remote_shipment_id,
                remote_status=remote_status,
                synced_at=now,
            )
        )

    def record_waybill(self, awb_number: str, courier_name: str | None = None, courier_id: str | None = None) -> None:
        if not self.remote_shipment_id:
            raise ValidationError({"remote_shipment_id": ["Cannot assign a waybill before the shipment exists"]})

        now = datetime.now(UTC)
        self.awb_number = awb_number
        self.courier_name = courier_name
        self.courier_id = courier_id
        self.synced_at = now
        self._advance_to(OrderStatus.PROCESSING)
        self.updated_at = now
        self.raise_(
            WaybillAssigned(
                order_id=str(self.id),
                awb_number=awb_number,
                courier_name=courier_name,
                courier_id=courier_id,
                assigned_at=now,
            )
        )

    def record_pickup_scheduled(self, scheduled_at: datetime | None = None) -> None:
        if not self.remote_shipment_id:
            raise ValidationError({"remote_shipment_id": ["Cannot schedule pickup before the shipment exists"]})

        now = datetime.now(UTC)
        self.pickup_scheduled_at = scheduled_at or now
        self.synced_at = now
        self._advance_to(OrderStatus.READY_TO_SHIP)
        self.updated_at = now
        self.raise_(
            PickupScheduled(
                order_id=str(self.id),
                remote_shipment_id=self.remote_shipment_id,
                scheduled_at=self.pickup_scheduled_at,
            )
        )

    def apply_carrier_status(
        self,
        remote_status: str,
        target: OrderStatus | None,
        awb_number: str | None = None,
        courier_name: str | None = None,
        expected_delivery_at: datetime | None = None,
    ) -> None:
        """Fold a carrier tracking update into the order.

        ``target`` is the local status the carrier status maps to, or None
        when it has no local equivalent; the remote status is recorded
        either way.
        """
        now = datetime.now(UTC)
        self.remote_status = remote_status

        if target == OrderStatus.CANCELLED:
            if OrderStatus(self.status) != OrderStatus.DELIVERED:
                self.status = OrderStatus.CANCELLED.value
        elif target is not None:
            self._advance_to(target)

        if target in (OrderStatus.SHIPPED, OrderStatus.DELIVERED) and not self.shipped_at:
            self.shipped_at = now
        if target == OrderStatus.DELIVERED and not self.delivered_at:
            self.delivered_at = now
        if expected_delivery_at:
            self.expected_delivery_at = expected_delivery_at
        if awb_number and not self.awb_number and self.remote_shipment_id:
            self.awb_number = awb_number
        if courier_name and not self.courier_name:
            self.courier_name = courier_name

        self.synced_at = now
        self.updated_at = now
        self.raise_(
            CarrierStatusUpdated(
                order_id=str(self.id),
                remote_status=remote_status,
                status=self.status,
                awb_number=self.awb_number,
                updated_at=now,
            )
        )

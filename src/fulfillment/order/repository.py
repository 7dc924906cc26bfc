"""Lookups the webhooks and the waybill sweep need beyond get-by-id."""

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order, OrderStatus


@fulfillment.repository(part_of=Order)
class OrderRepository:
    def find_by_payment_reference(self, payment_reference: str) -> Order | None:
        """Find the order a payment provider's order reference points at."""
        return self._dao.query.filter(payment_reference=payment_reference).all().first

    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_by_awb(self, awb_number: str) -> Order | None:
        return self._dao.query.filter(awb_number=awb_number).all().first

    def awaiting_waybill(self, limit: int = 50) -> list[Order]:
        """Orders the carrier accepted but that still have no waybill, oldest sync first.

        Orders that were never synced have no ``synced_at`` and sort last.
        Providers cannot filter on missing values uniformly, so the whole
        confirmed set is read and narrowed here.
        """
        confirmed = (
            self._dao.query.filter(status=OrderStatus.CONFIRMED.value)
            .order_by("synced_at")
            .limit(None)
            .all()
            .items
        )
        pending = [o for o in confirmed if o.remote_shipment_id and not o.awb_number]
        return pending[:limit]

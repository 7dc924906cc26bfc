"""Payment outcome — commands the payment webhook issues against an Order.

Each command runs in its own unit of work, so the payment state is
durable before any carrier sync starts.
"""

from datetime import datetime

import structlog
from protean import handle
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.exceptions import NotFoundError
from fulfillment.order.order import Order

logger = structlog.get_logger(__name__)


@fulfillment.command(part_of="Order")
class RecordPaymentCaptured:
    payment_reference = String(required=True, max_length=100)
    payment_id = String(max_length=100)
    paid_at = DateTime()


@fulfillment.command(part_of="Order")
class RecordPaymentFailed:
    payment_reference = String(required=True, max_length=100)
    payment_id = String(max_length=100)


def _order_for_reference(payment_reference: str) -> Order:
    order = current_domain.repository_for(Order).find_by_payment_reference(payment_reference)
    if order is None:
        raise NotFoundError(f"No order for payment reference {payment_reference}")
    return order


@fulfillment.command_handler(part_of=Order)
class PaymentOutcomeHandler:
    @handle(RecordPaymentCaptured)
    def record_captured(self, command: RecordPaymentCaptured) -> str:
        order = _order_for_reference(command.payment_reference)
        paid_at: datetime | None = command.paid_at
        order.record_payment_captured(command.payment_id, paid_at=paid_at)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Payment captured",
            order_id=str(order.id),
            payment_id=command.payment_id,
        )
        return str(order.id)

    @handle(RecordPaymentFailed)
    def record_failed(self, command: RecordPaymentFailed) -> str:
        order = _order_for_reference(command.payment_reference)
        if order.record_payment_failed(command.payment_id):
            current_domain.repository_for(Order).add(order)
            logger.info("Payment failed", order_id=str(order.id), payment_id=command.payment_id)
        else:
            logger.warning(
                "Ignoring payment failure for an already paid order",
                order_id=str(order.id),
                payment_id=command.payment_id,
            )
        return str(order.id)

"""Order placement — the seam the checkout flow calls once it completes."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment
from fulfillment.order.order import Order


@fulfillment.command(part_of="Order")
class PlaceOrder:
    """Hand a completed checkout over to fulfillment."""

    order_number = String(required=True, max_length=50)
    customer_id = Identifier()
    items = Text(required=True)  # JSON list of line item dicts
    shipping_address = Text(required=True)  # JSON object
    totals = Text()  # JSON object
    payment_method = String(max_length=50, default="razorpay")
    payment_reference = String(max_length=100)


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


@fulfillment.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.create(
            order_number=command.order_number,
            customer_id=command.customer_id,
            items_data=_loads(command.items),
            shipping_address=_loads(command.shipping_address),
            totals=_loads(command.totals) if command.totals else None,
            payment_method=command.payment_method,
            payment_reference=command.payment_reference,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

"""Product shipping profile — what the catalog declares about each product's parcel.

The catalog owns products; this aggregate keeps only the attributes the
package calculator needs. Any attribute may be absent.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment


@fulfillment.aggregate
class Product:
    sku = String(max_length=100)
    name = String(max_length=255)
    weight = Float(min_value=0.0)  # kg
    length = Float(min_value=0.0)  # cm
    breadth = Float(min_value=0.0)  # cm
    height = Float(min_value=0.0)  # cm
    updated_at = DateTime()


@fulfillment.command(part_of="Product")
class RecordShippingProfile:
    """Create or replace the shipping attributes of a catalog product."""

    product_id = Identifier(required=True)
    sku = String(max_length=100)
    name = String(max_length=255)
    weight = Float(min_value=0.0)
    length = Float(min_value=0.0)
    breadth = Float(min_value=0.0)
    height = Float(min_value=0.0)


@fulfillment.command_handler(part_of=Product)
class ShippingProfileHandler:
    @handle(RecordShippingProfile)
    def record_shipping_profile(self, command: RecordShippingProfile) -> str:
        repo = current_domain.repository_for(Product)
        attributes = {
            "sku": command.sku,
            "name": command.name,
            "weight": command.weight,
            "length": command.length,
            "breadth": command.breadth,
            "height": command.height,
            "updated_at": datetime.now(UTC),
        }
        try:
            product = repo.get(command.product_id)
            for field_name, value in attributes.items():
                setattr(product, field_name, value)
        except ObjectNotFoundError:
            product = Product(id=command.product_id, **attributes)

        repo.add(product)
        return str(product.id)

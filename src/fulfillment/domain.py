"""Fulfillment bounded context — order sync with the shipping carrier.

Owns the storefront Order as far as payment confirmation and shipment
sync are concerned, the append-only fulfillment log, and the catalog's
shipping profile for each product.
"""

from protean.domain import Domain

from fulfillment.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
fulfillment = Domain(name="fulfillment")

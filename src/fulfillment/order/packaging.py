"""Package dimension calculator.

Turns an order's line items into the single parcel the carrier is asked
to collect. Items are treated as stacked: weight and height add up per
unit, length and breadth take the largest footprint. Anything the
catalog does not declare falls back to a per-unit default, so a package
can always be built.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from fulfillment.catalog.product import Product

DEFAULT_WEIGHT = 0.5  # kg
DEFAULT_LENGTH = 10.0  # cm
DEFAULT_BREADTH = 10.0  # cm
DEFAULT_HEIGHT = 5.0  # cm

MIN_WEIGHT = 0.5
MIN_LENGTH = 10.0
MIN_BREADTH = 10.0
MIN_HEIGHT = 5.0


@dataclass(frozen=True)
class Package:
    weight: float
    length: float
    breadth: float
    height: float

    def to_dict(self) -> dict:
        return {
            "weight": self.weight,
            "length": self.length,
            "breadth": self.breadth,
            "height": self.height,
        }


def find_product(product_id: str) -> Product | None:
    """Default product lookup: the catalog's shipping profile, if any."""
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        return None


def _attribute(product, name: str, default: float) -> float:
    value = getattr(product, name, None) if product is not None else None
    if value is None or value <= 0:
        return default
    return float(value)


def _quantity(item) -> int:
    quantity = item.get("quantity") if isinstance(item, dict) else getattr(item, "quantity", None)
    if not quantity or quantity < 1:
        return 1
    return int(quantity)


def _product_id(item):
    return item.get("product_id") if isinstance(item, dict) else getattr(item, "product_id", None)


def compute_package(items: Iterable, lookup: Callable[[str], Product | None] | None = None) -> Package:
    """Compute the parcel for ``items`` (LineItem entities or dicts).

    ``lookup`` resolves a product id to an object with ``weight``,
    ``length``, ``breadth`` and ``height``; it defaults to the Product
    repository. Never raises for missing products or attributes.
    """
    lookup = lookup or find_product

    weight = 0.0
    length = 0.0
    breadth = 0.0
    height = 0.0

    for item in items:
        product_id = _product_id(item)
        product = lookup(str(product_id)) if product_id else None
        quantity = _quantity(item)

        weight += _attribute(product, "weight", DEFAULT_WEIGHT) * quantity
        length = max(length, _attribute(product, "length", DEFAULT_LENGTH))
        breadth = max(breadth, _attribute(product, "breadth", DEFAULT_BREADTH))
        height += _attribute(product, "height", DEFAULT_HEIGHT) * quantity

    return Package(
        weight=round(max(weight, MIN_WEIGHT), 3),
        length=max(length, MIN_LENGTH),
        breadth=max(breadth, MIN_BREADTH),
        height=max(height, MIN_HEIGHT),
    )

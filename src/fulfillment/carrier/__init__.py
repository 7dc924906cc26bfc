"""Carrier adapter factory.

Provides get_carrier() / set_carrier() to swap implementations:
- FakeCarrier for development and testing (default)
- ShiprocketCarrier for production (CARRIER_ADAPTER=shiprocket)
"""

import os

from fulfillment.carrier.port import CarrierGateway

_carrier_instance: CarrierGateway | None = None


def get_carrier() -> CarrierGateway:
    """Return the configured carrier adapter (singleton)."""
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from fulfillment.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "shiprocket":
            from fulfillment.carrier.shiprocket_adapter import ShiprocketCarrier
            from fulfillment.config import CarrierConfig

            _carrier_instance = ShiprocketCarrier(CarrierConfig.from_env())
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier: CarrierGateway) -> None:
    """Override the active carrier adapter (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None

"""Carrier port — the operations fulfillment needs from a shipping carrier.

The orchestrator programs against this interface; adapters are swapped
via configuration. Adapters raise ``CarrierError`` (or one of its
subclasses) instead of returning error markers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RemoteOrder:
    """Ids the carrier assigned when it accepted an order."""

    remote_order_id: str
    remote_shipment_id: str | None = None
    status: str | None = None
    awb_code: str | None = None
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Waybill:
    """A courier assignment for a shipment."""

    awb_code: str
    courier_name: str | None = None
    courier_id: str | None = None
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class TrackingStatus:
    awb: str
    current_status: str | None = None
    expected_delivery: str | None = None
    activities: list = field(default_factory=list)
    raw: dict = field(default_factory=dict, compare=False)


class CarrierGateway(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def authenticate(self) -> str:
        """Exchange account credentials for a bearer token.

        Raises:
            AuthError: credentials are missing or rejected.
        """
        ...

    @abstractmethod
    def create_remote_order(self, payload: dict) -> RemoteOrder:
        """Register a shipment order with the carrier."""
        ...

    @abstractmethod
    def assign_waybill(self, remote_shipment_id: str) -> Waybill:
        """Ask the carrier to assign a courier and tracking waybill.

        Raises:
            AWBAssignmentError: no courier could be assigned.
        """
        ...

    @abstractmethod
    def schedule_pickup(self, remote_shipment_ids: list[str]) -> dict:
        """Request physical pickup for one or more shipments."""
        ...

    @abstractmethod
    def track_shipment(self, awb: str) -> TrackingStatus:
        ...

    @abstractmethod
    def cancel_shipment(self, remote_ids: list[str]) -> dict:
        """Cancel orders at the carrier.

        The carrier's cancel endpoint takes its own order ids.
        """
        ...

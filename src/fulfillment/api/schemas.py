"""Pydantic API schemas for the fulfillment context.

These are the external API contracts, separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class LineItemRequest(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    image_url: str | None = None
    size: str | None = None
    color: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)


class ShippingAddressRequest(BaseModel):
    first_name: str
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str = "India"


class OrderTotalsRequest(BaseModel):
    subtotal: float = 0.0
    tax: float = 0.0
    shipping_cost: float = 0.0
    total: float = 0.0


class PlaceOrderRequest(BaseModel):
    order_number: str
    customer_id: str | None = None
    items: list[LineItemRequest]
    shipping_address: ShippingAddressRequest
    totals: OrderTotalsRequest | None = None
    payment_method: str = "razorpay"
    payment_reference: str | None = None


class ShippingProfileRequest(BaseModel):
    sku: str | None = None
    name: str | None = None
    weight: float | None = Field(default=None, ge=0)
    length: float | None = Field(default=None, ge=0)
    breadth: float | None = Field(default=None, ge=0)
    height: float | None = Field(default=None, ge=0)


class AssignWaybillRequest(BaseModel):
    remote_shipment_id: str | None = None


class CarrierStatusRequest(BaseModel):
    """Shipment status push from the carrier."""

    awb: str | None = None
    order_id: str | None = None  # the storefront order number
    current_status: str | None = None
    shipment_status: str | None = None
    courier_name: str | None = None
    etd: str | None = None
    scans: list[dict] = []


class ConfigureCarrierRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Carrier unavailable"
    operation: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str


class OrderSyncView(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str
    sync_state: str
    remote_order_id: str | None = None
    remote_shipment_id: str | None = None
    remote_status: str | None = None
    awb_number: str | None = None
    courier_name: str | None = None
    pickup_scheduled_at: datetime | None = None
    synced_at: datetime | None = None


class SyncResultResponse(BaseModel):
    order_id: str
    already_synced: bool
    message: str
    remote_order_id: str | None = None
    remote_shipment_id: str | None = None
    awb_code: str | None = None


class WaybillResponse(BaseModel):
    assigned: bool
    awb_code: str | None = None
    courier_name: str | None = None
    courier_id: str | None = None


class TrackingResponse(BaseModel):
    awb: str
    current_status: str | None = None
    expected_delivery: str | None = None
    activities: list[dict] = []


class LogEntryResponse(BaseModel):
    id: str
    action: str
    outcome: str
    request_payload: str | None = None
    response_payload: str | None = None
    error_message: str | None = None
    logged_at: datetime


class SweepResponse(BaseModel):
    attempted: int
    assigned: int


class CarrierConfigResponse(BaseModel):
    carrier: str
    failing_operations: list[str]

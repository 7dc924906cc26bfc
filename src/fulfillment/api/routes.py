"""FastAPI routes for the fulfillment context."""

import json
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from fulfillment.api.schemas import (
    AssignWaybillRequest,
    CarrierConfigResponse,
    CarrierStatusRequest,
    ConfigureCarrierRequest,
    LogEntryResponse,
    OrderIdResponse,
    OrderSyncView,
    PlaceOrderRequest,
    ShippingProfileRequest,
    StatusResponse,
    SweepResponse,
    SyncResultResponse,
    TrackingResponse,
    WaybillResponse,
)
from fulfillment.audit.log_entry import FulfillmentLogEntry
from fulfillment.carrier import get_carrier
from fulfillment.carrier.fake_adapter import FakeCarrier
from fulfillment.catalog.product import RecordShippingProfile
from fulfillment.config import WebhookConfig
from fulfillment.exceptions import CarrierError, NotFoundError, PreconditionError, SignatureError
from fulfillment.order.order import Order
from fulfillment.order.placement import PlaceOrder
from fulfillment.payment.webhook import PaymentEventHandler, secrets_match
from fulfillment.sync.orchestrator import FulfillmentOrchestrator
from fulfillment.sync.tracking import CarrierStatusWebhook

logger = structlog.get_logger(__name__)


@contextmanager
def _http_errors() -> Iterator[None]:
    """Translate pipeline errors into HTTP responses."""
    try:
        yield
    except (NotFoundError, ObjectNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PreconditionError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    except CarrierError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc


def _sync_view(order: Order) -> OrderSyncView:
    return OrderSyncView(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        sync_state=order.sync_state.value,
        remote_order_id=order.remote_order_id,
        remote_shipment_id=order.remote_shipment_id,
        remote_status=order.remote_status,
        awb_number=order.awb_number,
        courier_name=order.courier_name,
        pickup_scheduled_at=order.pickup_scheduled_at,
        synced_at=order.synced_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    """Hand a completed checkout over to fulfillment."""
    command = PlaceOrder(
        order_number=body.order_number,
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        totals=json.dumps(body.totals.model_dump()) if body.totals else None,
        payment_method=body.payment_method,
        payment_reference=body.payment_reference,
    )
    with _http_errors():
        result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("/{order_id}", response_model=OrderSyncView)
async def get_order_sync(order_id: str) -> OrderSyncView:
    """Payment and carrier sync state of an order."""
    with _http_errors():
        order = current_domain.repository_for(Order).get(order_id)
    return _sync_view(order)


# ---------------------------------------------------------------------------
# Product shipping profiles
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.put("/{product_id}/shipping-profile", response_model=StatusResponse)
async def record_shipping_profile(product_id: str, body: ShippingProfileRequest) -> StatusResponse:
    command = RecordShippingProfile(product_id=product_id, **body.model_dump())
    with _http_errors():
        current_domain.process(command, asynchronous=False)
    return StatusResponse(status="shipping_profile_recorded")


# ---------------------------------------------------------------------------
# Payment webhook
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/razorpay")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
) -> JSONResponse:
    """Process a payment provider webhook. The signature covers the raw body."""
    if not x_razorpay_signature:
        return JSONResponse(status_code=400, content={"error": "Missing signature"})

    raw_body = await request.body()
    try:
        result = await run_in_threadpool(PaymentEventHandler().handle_webhook, raw_body, x_razorpay_signature)
    except SignatureError as exc:
        logger.warning("Rejected payment webhook", reason=exc.message)
        return JSONResponse(status_code=401, content={"error": exc.message})
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": exc.messages})
    except Exception as exc:
        logger.error("Payment webhook processing failed", error=str(exc))
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return JSONResponse(status_code=200, content=result)


# ---------------------------------------------------------------------------
# Shipping Router (operator actions and carrier callbacks)
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])

# Routes that reach the carrier block on HTTP; they are plain functions so
# FastAPI runs them in its threadpool.


@shipping_router.post("/orders/{order_id}/sync", response_model=SyncResultResponse)
def sync_order(order_id: str) -> SyncResultResponse:
    """Create the carrier order, then request a waybill."""
    with _http_errors():
        result = FulfillmentOrchestrator().sync_order(order_id)
    return SyncResultResponse(
        order_id=result.order_id,
        already_synced=result.already_synced,
        message=result.message,
        remote_order_id=result.remote_order_id,
        remote_shipment_id=result.remote_shipment_id,
        awb_code=result.awb_code,
    )


@shipping_router.post("/orders/{order_id}/awb", response_model=WaybillResponse)
def assign_waybill(order_id: str, body: AssignWaybillRequest | None = None) -> WaybillResponse:
    """Retry waybill assignment. A carrier refusal is reported, not raised."""
    remote_shipment_id = body.remote_shipment_id if body else None
    with _http_errors():
        waybill = FulfillmentOrchestrator().assign_waybill(order_id, remote_shipment_id)
    if waybill is None:
        return WaybillResponse(assigned=False)
    return WaybillResponse(
        assigned=True,
        awb_code=waybill.awb_code,
        courier_name=waybill.courier_name,
        courier_id=waybill.courier_id,
    )


@shipping_router.post("/orders/{order_id}/pickup")
def schedule_pickup(order_id: str) -> dict:
    with _http_errors():
        return FulfillmentOrchestrator().schedule_pickup(order_id)


@shipping_router.post("/orders/{order_id}/cancel")
def cancel_shipment(order_id: str) -> dict:
    with _http_errors():
        return FulfillmentOrchestrator().cancel_shipment(order_id)


@shipping_router.get("/orders/{order_id}/tracking", response_model=TrackingResponse)
def track_shipment(order_id: str) -> TrackingResponse:
    with _http_errors():
        tracking = FulfillmentOrchestrator().track_shipment(order_id)
    return TrackingResponse(
        awb=tracking.awb,
        current_status=tracking.current_status,
        expected_delivery=tracking.expected_delivery,
        activities=tracking.activities,
    )


@shipping_router.get("/orders/{order_id}/logs", response_model=list[LogEntryResponse])
async def list_logs(order_id: str, action: str | None = None) -> list[LogEntryResponse]:
    """Fulfillment log of an order, oldest first."""
    entries = current_domain.repository_for(FulfillmentLogEntry).for_order(order_id, action=action)
    return [
        LogEntryResponse(
            id=str(entry.id),
            action=entry.action,
            outcome=entry.outcome,
            request_payload=entry.request_payload,
            response_payload=entry.response_payload,
            error_message=entry.error_message,
            logged_at=entry.logged_at,
        )
        for entry in entries
    ]


@shipping_router.post("/waybills/retry", response_model=SweepResponse)
def retry_missing_waybills(limit: int = 50) -> SweepResponse:
    """Re-attempt waybill assignment for orders still waiting on one."""
    result = FulfillmentOrchestrator().retry_missing_waybills(limit=limit)
    return SweepResponse(**result)


@shipping_router.post("/webhook", response_model=StatusResponse)
async def carrier_status_webhook(
    body: CarrierStatusRequest,
    x_api_key: str = Header(default=""),
) -> StatusResponse:
    """Process a carrier shipment status push."""
    expected = WebhookConfig.from_env().carrier_token
    if expected and not secrets_match(expected, x_api_key):
        raise HTTPException(status_code=401, detail="Invalid carrier webhook token")

    with _http_errors():
        CarrierStatusWebhook().handle(body.model_dump())
    return StatusResponse(status="tracking_updated")


@shipping_router.post("/carrier/configure", response_model=CarrierConfigResponse)
async def configure_carrier(body: ConfigureCarrierRequest) -> CarrierConfigResponse:
    """Configure the FakeCarrier behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Carrier configuration not available in production")

    carrier = get_carrier()
    if not isinstance(carrier, FakeCarrier):
        raise HTTPException(status_code=400, detail="Carrier configuration only available for FakeCarrier")

    carrier.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        operation=body.operation,
    )
    return CarrierConfigResponse(
        carrier=type(carrier).__name__,
        failing_operations=carrier.failing_operations,
    )

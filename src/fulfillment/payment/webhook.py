"""Payment provider webhook — records the payment outcome and starts carrier sync.

The signature is checked against the raw request bytes before anything
else happens. Once a capture is durably recorded the webhook is
acknowledged even if carrier sync fails, so the provider does not
redeliver an event that was already applied.
"""

import hashlib
import hmac
import json
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from fulfillment.audit.log_entry import FulfillmentLogEntry, LogAction, LogOutcome
from fulfillment.config import WebhookConfig
from fulfillment.exceptions import MissingSignatureError, SignatureError
from fulfillment.order.payment import RecordPaymentCaptured, RecordPaymentFailed
from fulfillment.sync.orchestrator import FulfillmentOrchestrator

logger = structlog.get_logger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"


def sign(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of ``raw_body``, as the provider computes it."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def secrets_match(expected: str, given: str) -> bool:
    """Constant-time comparison that tolerates non-ASCII input."""
    return hmac.compare_digest(expected.encode("utf-8"), given.encode("utf-8", "surrogateescape"))


def verify_signature(raw_body: bytes, signature: str | None, secret: str) -> None:
    if not signature:
        raise MissingSignatureError("Missing webhook signature")
    if not secret:
        # An unset secret must never let events through.
        raise SignatureError("Webhook secret is not configured")
    if not secrets_match(sign(raw_body, secret), signature):
        raise SignatureError("Invalid webhook signature")


def _payment_entity(event: dict) -> dict:
    try:
        entity = event["payload"]["payment"]["entity"]
    except (KeyError, TypeError):
        raise ValidationError({"payload": ["Event carries no payment entity"]}) from None
    if not isinstance(entity, dict) or not entity.get("order_id"):
        raise ValidationError({"payload": ["Payment entity carries no order reference"]})
    return entity


def _paid_at(entity: dict) -> datetime:
    created_at = entity.get("created_at")
    if isinstance(created_at, int | float):
        return datetime.fromtimestamp(created_at, UTC)
    return datetime.now(UTC)


class PaymentEventHandler:
    def __init__(self, config: WebhookConfig | None = None, orchestrator: FulfillmentOrchestrator | None = None):
        self.config = config or WebhookConfig.from_env()
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> FulfillmentOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = FulfillmentOrchestrator()
        return self._orchestrator

    def handle_webhook(self, raw_body: bytes, signature: str | None) -> dict:
        verify_signature(raw_body, signature, self.config.payment_secret)

        try:
            event = json.loads(raw_body)
        except ValueError:
            raise ValidationError({"body": ["Webhook body is not valid JSON"]}) from None
        if not isinstance(event, dict):
            raise ValidationError({"body": ["Webhook body must be a JSON object"]})

        event_type = event.get("event")
        logger.info("Payment webhook received", event_type=event_type)

        if event_type == PAYMENT_CAPTURED:
            return self._on_captured(_payment_entity(event))
        if event_type == PAYMENT_FAILED:
            return self._on_failed(_payment_entity(event))

        logger.info("Ignoring payment event", event_type=event_type)
        return {"received": True}

    def _on_captured(self, entity: dict) -> dict:
        order_id = current_domain.process(
            RecordPaymentCaptured(
                payment_reference=entity["order_id"],
                payment_id=entity.get("id"),
                paid_at=_paid_at(entity),
            ),
            asynchronous=False,
        )

        try:
            result = self.orchestrator.sync_order(order_id)
        except Exception as exc:
            FulfillmentLogEntry.record(
                order_id,
                LogAction.AUTO_CREATE_ORDER,
                LogOutcome.ERROR,
                request={"payment_reference": entity["order_id"], "payment_id": entity.get("id")},
                error=str(exc),
            )
            logger.error("Carrier sync after payment capture failed", order_id=order_id, error=str(exc))
            return {"success": True, "order_id": order_id, "sync_failed": True}

        return {"success": True, "order_id": order_id, "already_synced": result.already_synced}

    def _on_failed(self, entity: dict) -> dict:
        order_id = current_domain.process(
            RecordPaymentFailed(payment_reference=entity["order_id"], payment_id=entity.get("id")),
            asynchronous=False,
        )
        return {"success": True, "order_id": order_id}

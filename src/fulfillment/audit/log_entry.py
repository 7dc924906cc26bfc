"""Fulfillment log — append-only audit trail of every carrier interaction.

One row per attempted step. A ``pending`` row is written before a remote
call and a ``success`` or ``error`` row after it, so the log shows what was
attempted even when the process dies in between. Rows are never updated.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment


class LogAction(Enum):
    CREATE_ORDER = "create_order"
    GENERATE_AWB = "generate_awb"
    SCHEDULE_PICKUP = "schedule_pickup"
    TRACK_SHIPMENT = "track_shipment"
    CANCEL_SHIPMENT = "cancel_shipment"
    AUTO_CREATE_ORDER = "auto_create_order"
    WEBHOOK_RECEIVED = "webhook_received"


class LogOutcome(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


def _dump(payload) -> str | None:
    if payload is None:
        return None
    return json.dumps(payload, default=str, sort_keys=True)


@fulfillment.aggregate
class FulfillmentLogEntry:
    order_id = Identifier(required=True)
    action = String(required=True, max_length=50, choices=LogAction)
    outcome = String(required=True, max_length=20, choices=LogOutcome)
    request_payload = Text()  # JSON
    response_payload = Text()  # JSON
    error_message = Text()
    logged_at = DateTime(required=True)

    @classmethod
    def record(
        cls,
        order_id: str,
        action: LogAction,
        outcome: LogOutcome,
        request: dict | None = None,
        response: dict | None = None,
        error: str | None = None,
    ) -> "FulfillmentLogEntry":
        """Append a log row and persist it immediately."""
        entry = cls(
            order_id=str(order_id),
            action=action.value,
            outcome=outcome.value,
            request_payload=_dump(request),
            response_payload=_dump(response),
            error_message=error,
            logged_at=datetime.now(UTC),
        )
        current_domain.repository_for(cls).add(entry)
        return entry

    @property
    def request(self) -> dict | None:
        return json.loads(self.request_payload) if self.request_payload else None

    @property
    def response(self) -> dict | None:
        return json.loads(self.response_payload) if self.response_payload else None


@fulfillment.repository(part_of=FulfillmentLogEntry)
class FulfillmentLogRepository:
    def for_order(self, order_id: str, action: str | None = None) -> list[FulfillmentLogEntry]:
        """All log rows of an order, oldest first."""
        criteria = {"order_id": str(order_id)}
        if action:
            criteria["action"] = action
        return self._dao.query.filter(**criteria).order_by("logged_at").limit(None).all().items

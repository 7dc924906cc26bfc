"""Error taxonomy for the fulfillment sync pipeline.

Domain rule violations use Protean's ``ValidationError``. The classes
here cover failures at the edges: inbound webhooks, the carrier API and
operations invoked in the wrong order.
"""


class FulfillmentError(Exception):
    """Base class for all fulfillment pipeline errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SignatureError(FulfillmentError):
    """An inbound webhook failed its authenticity check."""


class MissingSignatureError(SignatureError):
    """An inbound webhook arrived without a signature header at all."""


class NotFoundError(FulfillmentError):
    """A referenced order or product does not exist."""


class PreconditionError(FulfillmentError):
    """An operation was invoked before the step it depends on completed."""


class CarrierError(FulfillmentError):
    """The carrier API returned a failure.

    ``status_code`` is the HTTP status of the carrier response, or None when
    the request never got one (timeout, connection failure). ``payload`` is
    the carrier's decoded error body, passed through untouched.
    """

    def __init__(self, message: str, status_code: int | None = None, payload: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "status_code": self.status_code,
            "errors": self.payload.get("errors"),
        }


class AuthError(CarrierError):
    """Carrier credentials are missing or were rejected."""


class AWBAssignmentError(CarrierError):
    """The carrier could not assign a courier/waybill to a shipment."""

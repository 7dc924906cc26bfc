"""Integration settings for the carrier API and inbound webhooks.

Adapters and handlers receive these objects through their constructors.
``from_env()`` is the only place the process environment is consulted.
"""

import os
from dataclasses import dataclass

SHIPROCKET_BASE_URL = "https://apiv2.shiprocket.in/v1/external"


@dataclass(frozen=True)
class CarrierConfig:
    """Connection settings for the shipping carrier."""

    base_url: str = SHIPROCKET_BASE_URL
    email: str = ""
    password: str = ""
    pickup_location: str = "Primary"
    channel_id: str = ""
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "CarrierConfig":
        return cls(
            base_url=os.environ.get("SHIPROCKET_BASE_URL", SHIPROCKET_BASE_URL).rstrip("/"),
            email=os.environ.get("SHIPROCKET_EMAIL", ""),
            password=os.environ.get("SHIPROCKET_PASSWORD", ""),
            pickup_location=os.environ.get("SHIPROCKET_PICKUP_NAME", "Primary"),
            channel_id=os.environ.get("SHIPROCKET_CHANNEL_ID", ""),
            timeout=float(os.environ.get("SHIPROCKET_TIMEOUT", "30")),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)


@dataclass(frozen=True)
class WebhookConfig:
    """Shared secrets for inbound webhooks."""

    payment_secret: str = ""
    carrier_token: str = ""

    @classmethod
    def from_env(cls) -> "WebhookConfig":
        return cls(
            payment_secret=os.environ.get("RAZORPAY_WEBHOOK_SECRET", ""),
            carrier_token=os.environ.get("CARRIER_WEBHOOK_TOKEN", ""),
        )

"""Shiprocket carrier adapter — authenticated HTTP client for the Shiprocket API.

Every request carries the session's bearer token. A 401 response drops
the token and the request is replayed once with a fresh one. Any other
failure surfaces as ``CarrierError`` with the carrier's own message;
retrying is left to the caller.
"""

import httpx
import structlog

from fulfillment.carrier.port import CarrierGateway, RemoteOrder, TrackingStatus, Waybill
from fulfillment.carrier.session import TokenSession
from fulfillment.config import CarrierConfig
from fulfillment.exceptions import AuthError, AWBAssignmentError, CarrierError

logger = structlog.get_logger(__name__)


def _decode(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text} if response.text else {}
    return body if isinstance(body, dict) else {"data": body}


def _error_message(body: dict, response: httpx.Response) -> str:
    return body.get("message") or f"Carrier request failed with status {response.status_code}"


def parse_waybill(body: dict) -> Waybill:
    """Read a waybill out of an AWB assignment response.

    Shiprocket answers either with the assignment nested under
    ``response.data`` or with the fields at the top level.
    """
    envelope = body.get("response")
    nested = envelope.get("data") if isinstance(envelope, dict) else None
    source = nested if isinstance(nested, dict) and nested.get("awb_code") else body

    awb_code = source.get("awb_code")
    if not awb_code:
        reason = (
            (nested or {}).get("awb_assign_error")
            or body.get("awb_assign_error")
            or body.get("message")
            or "Carrier did not assign a waybill"
        )
        raise AWBAssignmentError(reason, payload=body)

    courier_id = source.get("courier_company_id")
    return Waybill(
        awb_code=str(awb_code),
        courier_name=source.get("courier_name"),
        courier_id=str(courier_id) if courier_id is not None else None,
        raw=body,
    )


def parse_tracking(awb: str, body: dict) -> TrackingStatus:
    data = body.get("tracking_data") or {}
    tracks = data.get("shipment_track") or [{}]
    latest = tracks[0] or {}
    return TrackingStatus(
        awb=awb,
        current_status=latest.get("current_status"),
        expected_delivery=data.get("etd") or latest.get("edd"),
        activities=data.get("shipment_track_activities") or [],
        raw=body,
    )


class ShiprocketCarrier(CarrierGateway):
    def __init__(
        self,
        config: CarrierConfig,
        session: TokenSession | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self.session = session or TokenSession()
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _send(self, method: str, path: str, json: dict | None = None, token: str | None = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            return self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Carrier request timed out", method=method, path=path)
            raise CarrierError(f"Carrier request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Carrier request failed", method=method, path=path, error=str(exc))
            raise CarrierError(f"Carrier request to {path} failed: {exc}") from exc

    def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        token = self.session.get_or_refresh(self.authenticate)
        response = self._send(method, path, json=json, token=token)

        if response.status_code == 401:
            logger.info("Carrier rejected the session token, re-authenticating", path=path)
            self.session.invalidate()
            token = self.session.get_or_refresh(self.authenticate)
            response = self._send(method, path, json=json, token=token)
            if response.status_code == 401:
                self.session.invalidate()
                body = _decode(response)
                raise AuthError(_error_message(body, response), response.status_code, body)

        body = _decode(response)
        if not response.is_success:
            raise CarrierError(_error_message(body, response), response.status_code, body)
        return body

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def authenticate(self) -> str:
        if not self.config.has_credentials:
            raise AuthError("Carrier credentials are not configured")

        response = self._send(
            "POST",
            "/auth/login",
            json={"email": self.config.email, "password": self.config.password},
        )
        body = _decode(response)
        if not response.is_success:
            raise AuthError(_error_message(body, response), response.status_code, body)

        token = body.get("token")
        if not token:
            raise AuthError("Carrier login returned no token", response.status_code, body)

        self.session.store(token)
        logger.info("Carrier session token issued", expires_at=self.session.expires_at.isoformat())
        return token

    def create_remote_order(self, payload: dict) -> RemoteOrder:
        body = self._request("POST", "/orders/create/adhoc", json=payload)
        remote_order_id = body.get("order_id")
        if not remote_order_id:
            raise CarrierError(body.get("message") or "Carrier response carried no order id", payload=body)

        shipment_id = body.get("shipment_id")
        return RemoteOrder(
            remote_order_id=str(remote_order_id),
            remote_shipment_id=str(shipment_id) if shipment_id else None,
            status=body.get("status"),
            awb_code=body.get("awb_code") or None,
            raw=body,
        )

    def assign_waybill(self, remote_shipment_id: str) -> Waybill:
        body = self._request("POST", "/courier/assign/awb", json={"shipment_id": remote_shipment_id})
        return parse_waybill(body)

    def schedule_pickup(self, remote_shipment_ids: list[str]) -> dict:
        return self._request("POST", "/courier/generate/pickup", json={"shipment_id": list(remote_shipment_ids)})

    def track_shipment(self, awb: str) -> TrackingStatus:
        body = self._request("GET", f"/courier/track/awb/{awb}")
        return parse_tracking(awb, body)

    def cancel_shipment(self, remote_ids: list[str]) -> dict:
        return self._request("POST", "/orders/cancel", json={"ids": list(remote_ids)})

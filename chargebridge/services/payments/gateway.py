"""Thin HTTP transport to the wallet gateway.

The client knows where each operation lives and how to read the gateway's JSON
into a `GatewayResponse`. Request signing belongs to the vendor SDK and is
plugged in as an `httpx.Auth`.
"""

from enum import Enum
from time import perf_counter
from typing import Any, Protocol
from uuid import uuid4

import httpx
from pydantic import ValidationError

from chargebridge.common.config import settings
from chargebridge.common.logging import logger
from chargebridge.common.metrics import gateway_call_duration_seconds, gateway_calls_total
from chargebridge.services.payments.exceptions import TransportError
from chargebridge.services.payments.schemas import GatewayResponse


class GatewayOperation(str, Enum):
    COMPLETE_CHECKOUT_SESSION = "complete_checkout_session"
    CAPTURE_CHARGE = "capture_charge"
    CREATE_REFUND = "create_refund"
    CLOSE_CHARGE_PERMISSION = "close_charge_permission"
    GET_CHARGE = "get_charge"


class GatewayClient(Protocol):
    def call(self, operation: GatewayOperation, params: dict[str, Any]) -> GatewayResponse: ...


def _amount(params: dict[str, Any]) -> dict[str, str]:
    return {"amount": str(params["amount"]), "currencyCode": params["currency"]}


def build_request(operation: GatewayOperation, params: dict[str, Any]) -> tuple[str, str, dict | None]:
    """Return `(method, path, json_body)` for one gateway operation."""

    if operation is GatewayOperation.COMPLETE_CHECKOUT_SESSION:
        return (
            "POST",
            f"/checkoutSessions/{params['checkout_session_id']}/complete",
            {"chargeAmount": _amount(params)},
        )
    if operation is GatewayOperation.CAPTURE_CHARGE:
        return "POST", f"/charges/{params['charge_id']}/capture", {"captureAmount": _amount(params)}
    if operation is GatewayOperation.CREATE_REFUND:
        return "POST", "/refunds", {"chargeId": params["charge_id"], "refundAmount": _amount(params)}
    if operation is GatewayOperation.CLOSE_CHARGE_PERMISSION:
        return (
            "DELETE",
            f"/chargePermissions/{params['charge_permission_id']}/close",
            {
                "closureReason": params["closure_reason"][:255],
                "cancelPendingCharges": bool(params.get("cancel_pending_charges", False)),
            },
        )
    if operation is GatewayOperation.GET_CHARGE:
        return "GET", f"/charges/{params['charge_id']}", None
    raise ValueError(f"unsupported gateway operation: {operation}")


def parse_response(status_code: int, body: dict[str, Any]) -> GatewayResponse:
    """Translate gateway JSON into a `GatewayResponse`.

    Success bodies carry `statusDetails`; error bodies carry a top-level
    `reasonCode` and `message`.
    """

    details = body.get("statusDetails") or {}
    if not isinstance(details, dict):
        raise ValueError("statusDetails is not a JSON object")
    return GatewayResponse(
        success=200 <= status_code < 300,
        http_status=status_code,
        state=details.get("state") or "",
        reason_code=details.get("reasonCode") or body.get("reasonCode") or "",
        reason_description=details.get("reasonDescription") or body.get("message") or "",
        transaction_id=body.get("chargeId") or "",
        permission_id=body.get("chargePermissionId") or "",
        refund_id=body.get("refundId") or "",
    )


class HttpGatewayClient:
    """Synchronous httpx client; one request per call."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        auth: httpx.Auth | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = httpx.Client(
            base_url=base_url or settings.gateway_base_url,
            timeout=timeout if timeout is not None else settings.gateway_timeout_seconds,
            auth=auth,
            transport=transport,
            headers={"x-amz-pay-region": settings.gateway_region},
        )

    def call(self, operation: GatewayOperation, params: dict[str, Any]) -> GatewayResponse:
        method, path, body = build_request(operation, params)
        headers = {}
        if method == "POST":
            headers["x-amz-pay-idempotency-key"] = params.get("idempotency_key") or uuid4().hex

        start = perf_counter()
        try:
            resp = self.client.request(method, path, json=body, headers=headers)
            payload = resp.json()
            if not isinstance(payload, dict):
                raise ValueError("gateway body is not a JSON object")
            response = parse_response(resp.status_code, payload)
        except httpx.HTTPError as exc:
            gateway_calls_total.labels(operation=operation.value, outcome="transport_error").inc()
            raise TransportError(f"{operation.value}: {exc}", operation=operation.value) from exc
        except (ValueError, ValidationError) as exc:
            gateway_calls_total.labels(operation=operation.value, outcome="malformed").inc()
            raise TransportError(f"{operation.value}: malformed gateway response ({exc})", operation=operation.value) from exc
        finally:
            gateway_call_duration_seconds.labels(operation=operation.value).observe(max(0.0, perf_counter() - start))

        gateway_calls_total.labels(
            operation=operation.value,
            outcome="success" if response.success else "declined",
        ).inc()
        logger.info(
            "gateway_call operation=%s status=%s state=%s reason=%s",
            operation.value,
            response.http_status,
            response.state,
            response.reason_code,
        )
        return response

    def close(self) -> None:
        self.client.close()


def log_gateway_failure(operation: GatewayOperation, params: dict[str, Any], response: GatewayResponse) -> str:
    """Log a non-success gateway answer and return the message for `errors`."""

    message = f"Amazon Pay {operation.value} failed ({response.http_status})"
    if response.reason_code:
        message += f": {response.reason_code}"
    if response.reason_description:
        message += f" - {response.reason_description}"
    logger.warning(
        "gateway_failure operation=%s params=%s status=%s reason=%s description=%s",
        operation.value,
        {k: v for k, v in params.items() if k != "idempotency_key"},
        response.http_status,
        response.reason_code,
        response.reason_description,
    )
    return message

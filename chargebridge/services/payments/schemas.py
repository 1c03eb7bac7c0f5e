"""Value objects exchanged between the gateway client, mapper and provider."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from chargebridge.common.state_machine import PaymentStatus


class GatewayResponse(BaseModel):
    """One gateway answer, consumed exactly once by a mapper operation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    http_status: int
    state: str = ""
    reason_code: str = ""
    reason_description: str = ""
    transaction_id: str = ""
    permission_id: str = ""
    refund_id: str = ""


class TransactionRecord(BaseModel):
    """Snapshot of the order fields the provider reads.

    The order aggregate owns the lifecycle; the provider only reads the prior
    status and reports a new one.
    """

    order_id: str
    order_total: Decimal = Decimal("0")
    currency: str = ""
    authorization_transaction_id: str = ""
    authorization_transaction_code: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING
    errors: list[str] = Field(default_factory=list)


class CheckoutContext(BaseModel):
    """Checkout state passed explicitly by the caller into `authorize`."""

    checkout_session_id: str = ""
    order_total: Decimal
    currency: str = ""


class PaymentResult(BaseModel):
    """Outcome of one provider operation.

    `errors` is non-empty exactly when the operation did not reach its success
    outcome. `note` carries side-channel text for display (async authorization)
    and never implies a status change.
    """

    new_status: PaymentStatus
    result_text: str = ""
    errors: list[str] = Field(default_factory=list)
    note: str | None = None
    redirect_url: str | None = None
    authorization_transaction_id: str | None = None
    authorization_transaction_code: str | None = None
    refund_id: str | None = None

    @property
    def success(self) -> bool:
        return not self.errors


class CheckoutRequest(BaseModel):
    """Payload accepted by `POST /checkout`."""

    order_id: str = Field(min_length=1)
    checkout_session_id: str = ""
    order_total: Decimal = Field(gt=0)
    currency: str = ""


class RefundRequest(BaseModel):
    """Payload accepted by `POST /orders/{order_id}/refund`."""

    amount: Decimal = Field(gt=0)
    is_partial: bool = False

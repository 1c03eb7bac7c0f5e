"""Pure mapping from gateway answers to local payment outcomes.

Each function consumes exactly one `GatewayResponse` (or one transport error)
and returns exactly one `PaymentResult`. Nothing here performs I/O.
"""

from chargebridge.common.config import TransactionType
from chargebridge.common.state_machine import PaymentStatus, validate_transition
from chargebridge.services.payments import messages as keys
from chargebridge.services.payments.messages import MessageResolver
from chargebridge.services.payments.schemas import GatewayResponse, PaymentResult, TransactionRecord


def join_state(state: str, reason_code: str) -> str:
    """Space-join state and reason code, dropping empty parts."""

    return " ".join(part for part in (state, reason_code) if part)


def decline_message(reason_code: str, messages: MessageResolver) -> str:
    """Bucket a rejected authorization into soft, hard or generic failure."""

    reason = reason_code.lower()
    if reason == "amazonrejected":
        return messages.resolve(keys.SOFT_DECLINE)
    if reason == "harddeclined":
        return messages.resolve(keys.HARD_DECLINE)
    return messages.resolve(keys.AUTH_FAILURE)


def map_authorize(
    response: GatewayResponse,
    transaction_type: TransactionType,
    messages: MessageResolver,
    cart_url: str | None = None,
) -> PaymentResult:
    result = PaymentResult(
        new_status=PaymentStatus.PENDING,
        result_text=join_state(response.state, response.reason_code),
    )
    if not response.success:
        # Canceled by buyer or gateway, declined or expired.
        result.errors.append(decline_message(response.reason_code, messages))
        result.redirect_url = cart_url
        return result

    # A charge is the single transaction; the charge permission is the buyer's consent.
    result.authorization_transaction_id = response.transaction_id
    result.authorization_transaction_code = response.permission_id
    if response.http_status == 200:
        result.new_status = (
            PaymentStatus.PAID
            if transaction_type == TransactionType.AUTHORIZE_AND_CAPTURE
            else PaymentStatus.AUTHORIZED
        )
    else:
        # 202: authorization is pending, settled later by sync_pending.
        result.note = messages.resolve(keys.ASYNC_AUTHORIZATION_NOTE)
    return result


def map_capture(
    record: TransactionRecord,
    response: GatewayResponse,
    messages: MessageResolver,
    failure_message: str | None = None,
) -> PaymentResult:
    result = PaymentResult(new_status=record.payment_status)
    if not response.success:
        result.errors.append(failure_message or join_state(str(response.http_status), response.reason_code))
        return result

    result.result_text = join_state(response.state, response.reason_code)
    if response.state.lower() == "captured":
        result.new_status = PaymentStatus.PAID
    else:
        result.errors.append(messages.resolve(keys.UNEXPECTED_CAPTURE_STATE, response.state or "-"))
    return result


def map_refund(
    record: TransactionRecord,
    is_partial: bool,
    response: GatewayResponse,
    failure_message: str | None = None,
) -> PaymentResult:
    result = PaymentResult(new_status=record.payment_status)
    if not response.success:
        result.errors.append(failure_message or join_state(str(response.http_status), response.reason_code))
        return result

    result.new_status = PaymentStatus.PARTIALLY_REFUNDED if is_partial else PaymentStatus.REFUNDED
    result.result_text = join_state(response.state, response.reason_code)
    result.refund_id = response.refund_id or None
    return result


def map_void(
    record: TransactionRecord,
    response: GatewayResponse,
    failure_message: str | None = None,
) -> PaymentResult:
    result = PaymentResult(new_status=record.payment_status)
    if response.success:
        result.new_status = PaymentStatus.VOIDED
    else:
        result.errors.append(failure_message or join_state(str(response.http_status), response.reason_code))
    return result


def map_transport_error(prior_status: PaymentStatus, exc: Exception) -> PaymentResult:
    return PaymentResult(new_status=prior_status, errors=[str(exc)])


def skipped(prior_status: PaymentStatus) -> PaymentResult:
    """Result for an operation invoked outside its valid status precondition."""

    return PaymentResult(new_status=prior_status)


def map_charge_state(
    record: TransactionRecord,
    response: GatewayResponse,
    messages: MessageResolver,
    failure_message: str | None = None,
) -> PaymentResult:
    """Resolve a pending authorization from the charge's current state.

    `AuthorizationInitiated` keeps the order pending without an error; a
    declined charge keeps it pending with the same decline buckets as
    authorize; canceled and expired charges void the order.
    """

    result = PaymentResult(
        new_status=record.payment_status,
        result_text=join_state(response.state, response.reason_code),
    )
    if not response.success:
        result.errors.append(failure_message or join_state(str(response.http_status), response.reason_code))
        return result

    state = response.state.lower()
    if state == "captured":
        target = PaymentStatus.PAID
    elif state == "authorized":
        target = PaymentStatus.AUTHORIZED
    elif state in ("canceled", "expired"):
        target = PaymentStatus.VOIDED
    elif state == "declined":
        result.errors.append(decline_message(response.reason_code, messages))
        return result
    else:
        return result

    validate_transition(record.payment_status, target)
    result.new_status = target
    return result

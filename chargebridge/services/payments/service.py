"""Wallet gateway payment provider.

Forwards checkout, capture, refund and void to the gateway client and maps
every answer to one `PaymentResult`. Failures below the boundary (transport,
missing checkout state) are logged and returned as a single error; the
provider never raises to its caller.
"""

from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from chargebridge.common.config import CommonSettings, settings as default_settings
from chargebridge.common.logging import logger, order_id_ctx
from chargebridge.common.metrics import payment_status_transitions_total, precondition_skips_total
from chargebridge.common.state_machine import VOIDABLE_STATUSES, PaymentStatus
from chargebridge.services.payments import mapper
from chargebridge.services.payments import messages as keys
from chargebridge.services.payments.exceptions import CheckoutStateError, PaymentProviderError
from chargebridge.services.payments.gateway import GatewayClient, GatewayOperation, log_gateway_failure
from chargebridge.services.payments.messages import MessageResolver, ResourceCatalog
from chargebridge.services.payments.schemas import CheckoutContext, PaymentResult, TransactionRecord


class RefundIdStore(Protocol):
    def set_refund_id(self, order_id: str, value: str) -> None: ...


class PaymentProvider(Protocol):
    """Capability interface every registered provider implements."""

    system_name: str

    def authorize(self, context: CheckoutContext) -> PaymentResult: ...

    def capture(self, record: TransactionRecord) -> PaymentResult: ...

    def refund(self, record: TransactionRecord, amount: Decimal, is_partial: bool) -> PaymentResult: ...

    def void(self, record: TransactionRecord) -> PaymentResult: ...


class AmazonPayProvider:
    """Maps checkout-session, charge and refund calls to local payment status."""

    system_name = "Payments.AmazonPay"
    friendly_name = "Amazon Pay"

    supports_capture = True
    supports_refund = True
    supports_partial_refund = True
    supports_void = True

    def __init__(
        self,
        client: GatewayClient,
        refund_store: RefundIdStore,
        messages: MessageResolver | None = None,
        settings: CommonSettings | None = None,
    ) -> None:
        self.client = client
        self.refund_store = refund_store
        self.messages = messages or ResourceCatalog()
        self.settings = settings or default_settings

    def _currency(self, currency: str) -> str:
        return currency or self.settings.currency_code

    def _failed(self, operation: str, prior: PaymentStatus, exc: Exception) -> PaymentResult:
        logger.exception("payment operation failed operation=%s error=%s", operation, exc)
        return self._observe(operation, mapper.map_transport_error(prior, exc))

    def _observe(self, operation: str, result: PaymentResult) -> PaymentResult:
        payment_status_transitions_total.labels(operation=operation, status=result.new_status.value).inc()
        return result

    def _skip(self, operation: str, record: TransactionRecord) -> PaymentResult:
        logger.info(
            "payment operation skipped operation=%s order_id=%s status=%s",
            operation,
            record.order_id,
            record.payment_status.value,
        )
        precondition_skips_total.labels(operation=operation).inc()
        return mapper.skipped(record.payment_status)

    def authorize(self, context: CheckoutContext) -> PaymentResult:
        """Complete the checkout session and map the authorization outcome."""

        try:
            if not context.checkout_session_id:
                raise CheckoutStateError(self.messages.resolve(keys.MISSING_CHECKOUT_SESSION))
            params = {
                "checkout_session_id": context.checkout_session_id,
                "amount": context.order_total,
                "currency": self._currency(context.currency),
            }
            response = self.client.call(GatewayOperation.COMPLETE_CHECKOUT_SESSION, params)
        except PaymentProviderError as exc:
            return self._failed("authorize", PaymentStatus.PENDING, exc)

        result = mapper.map_authorize(
            response,
            self.settings.transaction_type,
            self.messages,
            cart_url=self.settings.cart_url,
        )
        return self._observe("authorize", result)

    def post_process(self, record: TransactionRecord) -> None:
        """Close the charge permission of a fully paid order.

        Pending charges are kept. Failures are logged only.
        """

        if record.payment_status != PaymentStatus.PAID:
            return
        params = {
            "charge_permission_id": record.authorization_transaction_code,
            "closure_reason": self.messages.resolve(keys.CLOSE_CHARGE_REASON),
            "cancel_pending_charges": False,
        }
        try:
            response = self.client.call(GatewayOperation.CLOSE_CHARGE_PERMISSION, params)
        except PaymentProviderError as exc:
            logger.exception("close charge permission failed order_id=%s error=%s", record.order_id, exc)
            return
        if not response.success:
            log_gateway_failure(GatewayOperation.CLOSE_CHARGE_PERMISSION, params, response)

    def capture(self, record: TransactionRecord) -> PaymentResult:
        params = {
            "charge_id": record.authorization_transaction_id,
            "amount": record.order_total,
            "currency": self._currency(record.currency),
        }
        try:
            response = self.client.call(GatewayOperation.CAPTURE_CHARGE, params)
        except PaymentProviderError as exc:
            return self._failed("capture", record.payment_status, exc)

        failure = None
        if not response.success:
            failure = log_gateway_failure(GatewayOperation.CAPTURE_CHARGE, params, response)
        return self._observe("capture", mapper.map_capture(record, response, self.messages, failure))

    def refund(self, record: TransactionRecord, amount: Decimal, is_partial: bool) -> PaymentResult:
        params = {
            "charge_id": record.authorization_transaction_id,
            "amount": amount,
            "currency": self._currency(record.currency),
        }
        try:
            response = self.client.call(GatewayOperation.CREATE_REFUND, params)
        except PaymentProviderError as exc:
            return self._failed("refund", record.payment_status, exc)

        failure = None
        if not response.success:
            failure = log_gateway_failure(GatewayOperation.CREATE_REFUND, params, response)
        result = mapper.map_refund(record, is_partial, response, failure)

        if result.refund_id and record.order_id:
            token = order_id_ctx.set(record.order_id)
            try:
                self.refund_store.set_refund_id(record.order_id, result.refund_id)
            except (LookupError, SQLAlchemyError) as exc:
                # The gateway already refunded; storing the id is the order's concern.
                logger.exception("refund id not stored order_id=%s error=%s", record.order_id, exc)
            finally:
                order_id_ctx.reset(token)
        return self._observe("refund", result)

    def void(self, record: TransactionRecord) -> PaymentResult:
        """Close the charge permission and cancel pending charges.

        Orders that are neither pending nor authorized are returned unchanged.
        """

        if record.payment_status not in VOIDABLE_STATUSES:
            return self._skip("void", record)

        params = {
            "charge_permission_id": record.authorization_transaction_code,
            "closure_reason": self.messages.resolve(keys.CLOSE_CHARGE_REASON),
            "cancel_pending_charges": True,
        }
        try:
            response = self.client.call(GatewayOperation.CLOSE_CHARGE_PERMISSION, params)
        except PaymentProviderError as exc:
            return self._failed("void", record.payment_status, exc)

        failure = None
        if not response.success:
            failure = log_gateway_failure(GatewayOperation.CLOSE_CHARGE_PERMISSION, params, response)
        return self._observe("void", mapper.map_void(record, response, failure))

    def sync_pending(self, record: TransactionRecord) -> PaymentResult:
        """Resolve a pending asynchronous authorization from the charge state."""

        if record.payment_status != PaymentStatus.PENDING or not record.authorization_transaction_id:
            return self._skip("sync", record)

        params: dict[str, Any] = {"charge_id": record.authorization_transaction_id}
        try:
            response = self.client.call(GatewayOperation.GET_CHARGE, params)
        except PaymentProviderError as exc:
            return self._failed("sync", record.payment_status, exc)

        failure = None
        if not response.success:
            failure = log_gateway_failure(GatewayOperation.GET_CHARGE, params, response)
        return self._observe("sync", mapper.map_charge_state(record, response, self.messages, failure))

    def payment_fee_info(self) -> tuple[float, bool]:
        """Return `(fixed fee or percentage, use percentage)` for the checkout."""

        return self.settings.additional_fee, self.settings.additional_fee_percentage

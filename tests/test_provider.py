"""Provider tests against a scripted gateway client."""

import logging
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from chargebridge.common.config import TransactionType
from chargebridge.common.state_machine import PaymentStatus
from chargebridge.services.payments import messages as keys
from chargebridge.services.payments.exceptions import TransportError
from chargebridge.services.payments.gateway import GatewayOperation
from chargebridge.services.payments.schemas import CheckoutContext
from factories import declined, make_record, ok


def checkout(session_id: str = "session-1") -> CheckoutContext:
    return CheckoutContext(checkout_session_id=session_id, order_total=Decimal("49.90"))


def test_authorize_completes_checkout_session(provider_factory):
    provider, gateway = provider_factory(
        ok(200, state="Completed", transaction_id="S02-charge", permission_id="S02-perm"),
        transaction_type=TransactionType.AUTHORIZE_AND_CAPTURE,
    )

    result = provider.authorize(checkout())

    assert result.new_status == PaymentStatus.PAID
    operation, params = gateway.calls[0]
    assert operation is GatewayOperation.COMPLETE_CHECKOUT_SESSION
    assert params == {"checkout_session_id": "session-1", "amount": Decimal("49.90"), "currency": "EUR"}


def test_authorize_without_session_never_calls_gateway(provider_factory):
    provider, gateway = provider_factory()

    result = provider.authorize(checkout(session_id=""))

    assert gateway.calls == []
    assert result.new_status == PaymentStatus.PENDING
    assert result.errors == [provider.messages.resolve(keys.MISSING_CHECKOUT_SESSION)]


def test_authorize_soft_decline(provider_factory):
    provider, _ = provider_factory(declined(state="Declined", reason_code="AmazonRejected"))

    result = provider.authorize(checkout())

    assert result.new_status == PaymentStatus.PENDING
    assert result.errors == [provider.messages.resolve(keys.SOFT_DECLINE)]
    assert result.redirect_url == "/cart"


def test_authorize_transport_error_is_captured(provider_factory):
    provider, _ = provider_factory(TransportError("complete_checkout_session: timed out"))

    result = provider.authorize(checkout())

    assert result.new_status == PaymentStatus.PENDING
    assert result.errors == ["complete_checkout_session: timed out"]


def test_capture_success(provider_factory):
    provider, gateway = provider_factory(ok(state="Captured"))

    result = provider.capture(make_record(PaymentStatus.AUTHORIZED))

    assert result.new_status == PaymentStatus.PAID
    operation, params = gateway.calls[0]
    assert operation is GatewayOperation.CAPTURE_CHARGE
    assert params["charge_id"] == "S02-charge-1"


def test_capture_gateway_failure_is_formatted(provider_factory):
    provider, _ = provider_factory(
        declined(400, reason_code="InvalidChargeStatus", reason_description="Charge is not authorized")
    )

    result = provider.capture(make_record(PaymentStatus.AUTHORIZED))

    assert result.new_status == PaymentStatus.AUTHORIZED
    assert result.errors == [
        "Amazon Pay capture_charge failed (400): InvalidChargeStatus - Charge is not authorized"
    ]


def test_capture_twice_has_no_refund_side_effect(provider_factory, refund_store):
    provider, _ = provider_factory(ok(state="Captured"), ok(state="Captured"))
    record = make_record(PaymentStatus.AUTHORIZED)

    assert provider.capture(record).new_status == PaymentStatus.PAID
    assert provider.capture(record).new_status == PaymentStatus.PAID
    assert refund_store.saved == []


@pytest.mark.parametrize(
    "is_partial,expected",
    [(True, PaymentStatus.PARTIALLY_REFUNDED), (False, PaymentStatus.REFUNDED)],
)
def test_refund_persists_refund_id(provider_factory, refund_store, is_partial, expected):
    provider, _ = provider_factory(ok(201, state="RefundInitiated", refund_id="S02-refund"))

    result = provider.refund(make_record(PaymentStatus.PAID), Decimal("10.00"), is_partial)

    assert result.new_status == expected
    assert refund_store.saved == [("order-1", "S02-refund")]


def test_refund_without_refund_id_writes_nothing(provider_factory, refund_store):
    provider, _ = provider_factory(ok(201, state="RefundInitiated"))

    result = provider.refund(make_record(PaymentStatus.PAID), Decimal("49.90"), False)

    assert result.new_status == PaymentStatus.REFUNDED
    assert refund_store.saved == []


def test_refund_store_failure_does_not_flip_outcome(provider_factory, refund_store):
    def broken(order_id, value):
        raise OperationalError("UPDATE orders", {}, Exception("database is locked"))

    refund_store.set_refund_id = broken
    provider, _ = provider_factory(ok(201, refund_id="S02-refund"))

    result = provider.refund(make_record(PaymentStatus.PAID), Decimal("5.00"), True)

    assert result.new_status == PaymentStatus.PARTIALLY_REFUNDED
    assert result.errors == []


def test_refund_failure(provider_factory, refund_store):
    provider, _ = provider_factory(declined(reason_code="TransactionAmountExceeded"))

    result = provider.refund(make_record(PaymentStatus.PAID), Decimal("500.00"), False)

    assert result.new_status == PaymentStatus.PAID
    assert len(result.errors) == 1
    assert refund_store.saved == []


@pytest.mark.parametrize("status", [PaymentStatus.PENDING, PaymentStatus.AUTHORIZED])
def test_void_closes_charge_permission(provider_factory, status):
    provider, gateway = provider_factory(ok(state="Closed"))

    result = provider.void(make_record(status))

    assert result.new_status == PaymentStatus.VOIDED
    operation, params = gateway.calls[0]
    assert operation is GatewayOperation.CLOSE_CHARGE_PERMISSION
    assert params["cancel_pending_charges"] is True
    assert params["charge_permission_id"] == "S02-permission-1"


@pytest.mark.parametrize(
    "status",
    [PaymentStatus.PAID, PaymentStatus.VOIDED, PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED],
)
def test_void_outside_precondition_is_skipped(provider_factory, status):
    provider, gateway = provider_factory()

    result = provider.void(make_record(status))

    assert gateway.calls == []
    assert result.new_status == status
    assert result.errors == []


def test_void_transport_error(provider_factory):
    provider, _ = provider_factory(TransportError("close_charge_permission: connection refused"))

    result = provider.void(make_record(PaymentStatus.AUTHORIZED))

    assert result.new_status == PaymentStatus.AUTHORIZED
    assert result.errors == ["close_charge_permission: connection refused"]


def test_post_process_closes_paid_orders_without_cancelling(provider_factory):
    provider, gateway = provider_factory(ok(state="Closed"))

    provider.post_process(make_record(PaymentStatus.PAID))

    operation, params = gateway.calls[0]
    assert operation is GatewayOperation.CLOSE_CHARGE_PERMISSION
    assert params["cancel_pending_charges"] is False


def test_post_process_ignores_unpaid_and_swallows_failures(provider_factory):
    provider, gateway = provider_factory(TransportError("down"))

    provider.post_process(make_record(PaymentStatus.AUTHORIZED))
    assert gateway.calls == []

    provider.post_process(make_record(PaymentStatus.PAID))
    assert len(gateway.calls) == 1


def test_sync_pending_resolves_authorization(provider_factory):
    provider, gateway = provider_factory(ok(state="Authorized"))

    result = provider.sync_pending(make_record(PaymentStatus.PENDING))

    assert result.new_status == PaymentStatus.AUTHORIZED
    assert gateway.calls[0][0] is GatewayOperation.GET_CHARGE


def test_sync_pending_skips_settled_orders(provider_factory):
    provider, gateway = provider_factory()

    result = provider.sync_pending(make_record(PaymentStatus.PAID))

    assert gateway.calls == []
    assert result.new_status == PaymentStatus.PAID


def test_capabilities_and_fee_info(provider_factory):
    provider, _ = provider_factory()

    assert provider.supports_capture and provider.supports_refund
    assert provider.supports_partial_refund and provider.supports_void
    assert provider.payment_fee_info() == (0.0, False)


@pytest.mark.parametrize(
    "operation,prior",
    [
        ("authorize", PaymentStatus.PENDING),
        ("capture", PaymentStatus.AUTHORIZED),
        ("refund", PaymentStatus.PAID),
        ("void", PaymentStatus.AUTHORIZED),
        ("sync", PaymentStatus.PENDING),
    ],
)
def test_transport_error_is_logged_before_it_is_returned(provider_factory, refund_store, caplog, operation, prior):
    provider, _ = provider_factory(TransportError(f"{operation}: connection reset"))
    record = make_record(prior)
    calls = {
        "authorize": lambda: provider.authorize(checkout()),
        "capture": lambda: provider.capture(record),
        "refund": lambda: provider.refund(record, Decimal("10.00"), False),
        "void": lambda: provider.void(record),
        "sync": lambda: provider.sync_pending(record),
    }

    with caplog.at_level(logging.ERROR, logger="chargebridge"):
        result = calls[operation]()

    assert result.new_status == prior
    assert result.errors == [f"{operation}: connection reset"]
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert f"operation={operation}" in errors[0].getMessage()
    assert errors[0].exc_info is not None
    assert refund_store.saved == []

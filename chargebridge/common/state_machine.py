"""Local payment status values and the follow-up transitions they allow."""

from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    AUTHORIZED = "Authorized"
    PAID = "Paid"
    VOIDED = "Voided"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "PartiallyRefunded"


# Void closes the charge permission, which only makes sense before money moved.
VOIDABLE_STATUSES: frozenset[PaymentStatus] = frozenset({PaymentStatus.PENDING, PaymentStatus.AUTHORIZED})

# Gateway-driven operations map responses directly; this table guards only the
# asynchronous follow-up of a pending authorization.
ALLOWED_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.PENDING, PaymentStatus.AUTHORIZED, PaymentStatus.PAID, PaymentStatus.VOIDED},
    PaymentStatus.AUTHORIZED: {PaymentStatus.PAID, PaymentStatus.VOIDED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED},
    PaymentStatus.VOIDED: set(),
    PaymentStatus.REFUNDED: set(),
}


def validate_transition(current: PaymentStatus, new: PaymentStatus) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current.value} -> {new.value}")

"""Errors raised below the provider boundary.

The provider catches every `PaymentProviderError` and turns it into a single
entry of `PaymentResult.errors`; nothing here reaches the caller as a fault.
"""


class PaymentProviderError(Exception):
    """Base class for failures the provider converts into result errors."""


class TransportError(PaymentProviderError):
    """The call to the gateway failed (network, timeout, malformed body)."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class CheckoutStateError(PaymentProviderError):
    """The caller did not supply the checkout state required to complete payment."""

"""User-facing message lookup.

Localization belongs to the host platform; this module only defines the narrow
resolver contract the provider consumes and an English catalog used when no
platform resolver is wired in.
"""

from typing import Protocol


SOFT_DECLINE = "Plugins.Payments.AmazonPay.AuthorizationSoftDeclineMessage"
HARD_DECLINE = "Plugins.Payments.AmazonPay.AuthorizationHardDeclineMessage"
AUTH_FAILURE = "Plugins.Payments.AmazonPay.AuthenticationStatusFailureMessage"
MISSING_CHECKOUT_SESSION = "Plugins.Payments.AmazonPay.MissingCheckoutSessionState"
ASYNC_AUTHORIZATION_NOTE = "Plugins.Payments.AmazonPay.AsyncPaymentAuthorizationNote"
UNEXPECTED_CAPTURE_STATE = "Plugins.Payments.AmazonPay.UnexpectedCaptureState"
CLOSE_CHARGE_REASON = "Plugins.Payments.AmazonPay.CloseChargeReason"

DEFAULT_MESSAGES: dict[str, str] = {
    SOFT_DECLINE: (
        "The payment was declined. Please select another payment method in your Amazon Pay wallet "
        "or try again."
    ),
    HARD_DECLINE: "The payment was declined. Please choose a different payment method.",
    AUTH_FAILURE: "The payment could not be authorized. Please try again or choose another payment method.",
    MISSING_CHECKOUT_SESSION: "The Amazon Pay checkout session is missing. Please restart the checkout.",
    ASYNC_AUTHORIZATION_NOTE: (
        "Your payment is being processed. You will be notified by e-mail as soon as it is complete."
    ),
    UNEXPECTED_CAPTURE_STATE: "The payment could not be captured. Gateway reported state: {0}.",
    CLOSE_CHARGE_REASON: "Order completed.",
}


class MessageResolver(Protocol):
    def resolve(self, key: str, *args) -> str: ...


class ResourceCatalog:
    """Dictionary-backed resolver; unknown keys resolve to the key itself."""

    def __init__(self, resources: dict[str, str] | None = None) -> None:
        self.resources = dict(DEFAULT_MESSAGES)
        if resources:
            self.resources.update(resources)

    def resolve(self, key: str, *args) -> str:
        template = self.resources.get(key)
        if template is None:
            return key
        return template.format(*args) if args else template

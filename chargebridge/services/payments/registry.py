"""Explicit provider registry resolved once at startup."""

from chargebridge.services.payments.gateway import GatewayClient
from chargebridge.services.payments.messages import MessageResolver
from chargebridge.services.payments.service import AmazonPayProvider, PaymentProvider, RefundIdStore


class ProviderRegistry:
    """Maps provider system names to constructed provider instances."""

    def __init__(self) -> None:
        self._providers: dict[str, PaymentProvider] = {}

    def register(self, provider: PaymentProvider) -> None:
        if provider.system_name in self._providers:
            raise ValueError(f"provider already registered: {provider.system_name}")
        self._providers[provider.system_name] = provider

    def get(self, system_name: str) -> PaymentProvider:
        try:
            return self._providers[system_name]
        except KeyError:
            raise KeyError(f"unknown payment provider: {system_name}") from None

    def names(self) -> list[str]:
        return sorted(self._providers)


def build_registry(
    client: GatewayClient,
    refund_store: RefundIdStore,
    messages: MessageResolver | None = None,
) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register(AmazonPayProvider(client, refund_store, messages=messages))
    return registry

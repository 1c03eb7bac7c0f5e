"""Payment bridge API.

Request handlers load the order, hand it to the registered provider and
persist the reported status. The provider decides the outcome; handlers only
serialize operations per request.
"""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request

from chargebridge.common.config import settings
from chargebridge.common.db import Base, SessionLocal, engine
from chargebridge.common.logging import configure_logging, logger, order_id_ctx, trace_id_ctx
from chargebridge.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from chargebridge.common.startup import log_startup_config
from chargebridge.common.state_machine import PaymentStatus
from chargebridge.common.tracing import instrument_app, setup_tracing
from chargebridge.services.payments.gateway import HttpGatewayClient
from chargebridge.services.payments.models import Order, OrderRepository
from chargebridge.services.payments.registry import ProviderRegistry, build_registry
from chargebridge.services.payments.schemas import CheckoutContext, CheckoutRequest, PaymentResult, RefundRequest
from chargebridge.services.payments.service import AmazonPayProvider


def create_app(
    repository: OrderRepository,
    registry: ProviderRegistry,
    provider_name: str = AmazonPayProvider.system_name,
    bind=None,
    gateway=None,
) -> FastAPI:
    """Build the API around an order repository and a provider registry.

    A `gateway` with a `close` method is closed when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if bind is not None:
            Base.metadata.create_all(bind)
        yield
        if gateway is not None:
            gateway.close()

    app = FastAPI(title="Chargebridge Payments", lifespan=lifespan)
    instrument_app(app)
    provider = registry.get(provider_name)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    def load_order(order_id: str, correlation_id: str | None) -> Order:
        trace_id_ctx.set(correlation_id or str(uuid4()))
        order_id_ctx.set(order_id)
        order = repository.get(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="order not found")
        return order

    def finish(order_id: str, operation: str, result: PaymentResult) -> dict:
        repository.save_result(order_id, result, operation)
        logger.info(
            "payment_operation operation=%s status=%s success=%s errors=%s",
            operation,
            result.new_status.value,
            result.success,
            len(result.errors),
        )
        return result.model_dump(mode="json")

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True, "providers": registry.names()}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.post("/checkout")
    def checkout(req: CheckoutRequest, x_correlation_id: str | None = Header(default=None)):
        """Create the order once and complete its checkout session."""

        trace_id_ctx.set(x_correlation_id or str(uuid4()))
        order_id_ctx.set(req.order_id)
        order = repository.create(req.order_id, req.order_total, req.currency or settings.currency_code)
        if order.payment_status != PaymentStatus.PENDING.value or order.authorization_transaction_id:
            raise HTTPException(status_code=409, detail="checkout already completed")

        result = provider.authorize(
            CheckoutContext(
                checkout_session_id=req.checkout_session_id,
                order_total=req.order_total,
                currency=order.currency,
            )
        )
        body = finish(req.order_id, "authorize", result)
        if result.new_status == PaymentStatus.PAID and hasattr(provider, "post_process"):
            provider.post_process(repository.get(req.order_id).to_record())
        return body

    @app.post("/orders/{order_id}/capture")
    def capture(order_id: str, x_correlation_id: str | None = Header(default=None)):
        order = load_order(order_id, x_correlation_id)
        return finish(order_id, "capture", provider.capture(order.to_record()))

    @app.post("/orders/{order_id}/refund")
    def refund(order_id: str, req: RefundRequest, x_correlation_id: str | None = Header(default=None)):
        order = load_order(order_id, x_correlation_id)
        return finish(order_id, "refund", provider.refund(order.to_record(), req.amount, req.is_partial))

    @app.post("/orders/{order_id}/void")
    def void(order_id: str, x_correlation_id: str | None = Header(default=None)):
        order = load_order(order_id, x_correlation_id)
        return finish(order_id, "void", provider.void(order.to_record()))

    @app.post("/orders/{order_id}/sync")
    def sync(order_id: str, x_correlation_id: str | None = Header(default=None)):
        """Resolve a pending asynchronous authorization."""

        order = load_order(order_id, x_correlation_id)
        if not hasattr(provider, "sync_pending"):
            raise HTTPException(status_code=400, detail="provider does not support pending sync")
        return finish(order_id, "sync", provider.sync_pending(order.to_record()))

    return app


def build_default_app() -> FastAPI:
    configure_logging()
    setup_tracing(settings.service_name)
    log_startup_config(
        settings.service_name,
        [
            "SERVICE_NAME",
            "DATABASE_URL",
            "GATEWAY_BASE_URL",
            "TRANSACTION_TYPE",
        ],
    )
    repository = OrderRepository(SessionLocal)
    gateway = HttpGatewayClient()
    registry = build_registry(gateway, repository)
    return create_app(repository, registry, bind=engine, gateway=gateway)


def main() -> None:
    """Serve the payment API with uvicorn."""

    uvicorn.run(build_default_app(), host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    main()

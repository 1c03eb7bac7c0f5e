"""Order persistence for the payment bridge.

The order aggregate is the source of truth for payment status and the gateway
identifiers captured at checkout. The provider itself only writes `refund_id`.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chargebridge.common.db import Base
from chargebridge.common.state_machine import PaymentStatus
from chargebridge.services.payments.schemas import PaymentResult, TransactionRecord


class Order(Base):
    """Payment-relevant slice of an order."""

    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String, primary_key=True)
    order_total: Mapped[Decimal] = mapped_column(Numeric(18, 4))
    currency: Mapped[str] = mapped_column(String(3))
    payment_status: Mapped[str] = mapped_column(String, index=True, default=PaymentStatus.PENDING.value)
    authorization_transaction_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    authorization_transaction_code: Mapped[str | None] = mapped_column(String, nullable=True)
    authorization_transaction_result: Mapped[str | None] = mapped_column(String, nullable=True)
    capture_transaction_result: Mapped[str | None] = mapped_column(String, nullable=True)
    refund_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            order_id=self.order_id,
            order_total=self.order_total,
            currency=self.currency,
            authorization_transaction_id=self.authorization_transaction_id or "",
            authorization_transaction_code=self.authorization_transaction_code or "",
            payment_status=PaymentStatus(self.payment_status),
        )


class OrderRepository:
    """Session-per-call access to orders."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def get(self, order_id: str) -> Order | None:
        with self.session_factory() as db:
            return db.get(Order, order_id)

    def create(self, order_id: str, order_total: Decimal, currency: str) -> Order:
        """Create the order row once; an existing row is returned unchanged."""

        with self.session_factory() as db:
            existing = db.get(Order, order_id)
            if existing:
                return existing
            order = Order(
                order_id=order_id,
                order_total=order_total,
                currency=currency,
                payment_status=PaymentStatus.PENDING.value,
            )
            db.add(order)
            db.commit()
            return order

    def set_refund_id(self, order_id: str, value: str) -> None:
        with self.session_factory() as db:
            order = db.get(Order, order_id)
            if order is None:
                raise LookupError(f"order {order_id} not found")
            order.refund_id = value
            db.commit()

    def save_result(self, order_id: str, result: PaymentResult, operation: str) -> Order:
        """Persist the status and gateway identifiers reported by one operation."""

        with self.session_factory() as db:
            order = db.get(Order, order_id)
            if order is None:
                raise LookupError(f"order {order_id} not found")
            order.payment_status = result.new_status.value
            if result.authorization_transaction_id:
                order.authorization_transaction_id = result.authorization_transaction_id
            if result.authorization_transaction_code:
                order.authorization_transaction_code = result.authorization_transaction_code
            # Refund and void text is not persisted.
            if result.result_text and operation == "capture":
                order.capture_transaction_result = result.result_text
            elif result.result_text and operation in ("authorize", "sync"):
                order.authorization_transaction_result = result.result_text
            db.commit()
            return order

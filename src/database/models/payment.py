import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import DECIMAL, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.constants import TransactionStatus
from src.database.base import Base, JSONType

if TYPE_CHECKING:
    from src.database.models.order import Order


def _new_id() -> str:
    return str(uuid.uuid4())


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    __table_args__ = (
        Index("idx_payment_transactions_order_id", "order_id"),
        Index("idx_payment_transactions_user_id", "user_id"),
        Index("idx_payment_transactions_status", "status"),
        Index("idx_payment_transactions_gateway_id", "gateway_transaction_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    transaction_reference: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="TZS")
    provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TransactionStatus.PENDING.value
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    webhook_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    failed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    order: Mapped["Order"] = relationship("Order", back_populates="transactions")


class PaymentLog(Base):
    """Append-only audit trail, one row per reconciliation event."""

    __tablename__ = "payment_logs"
    __table_args__ = (Index("idx_payment_logs_transaction_id", "transaction_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("payment_transactions.id", ondelete="CASCADE"),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import DECIMAL, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.constants import OrderPaymentStatus, OrderStatus
from src.database.base import Base

if TYPE_CHECKING:
    from src.database.models.payment import PaymentTransaction


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("idx_orders_user_id", "user_id"),
        Index("idx_orders_status", "status"),
        Index("idx_orders_payment_status", "payment_status"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2), nullable=False, default=Decimal("0.00")
    )
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="TZS")
    # Fulfillment state and payment state move independently
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=OrderStatus.PENDING.value
    )
    payment_status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=OrderPaymentStatus.PENDING.value
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
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

    transactions: Mapped[List["PaymentTransaction"]] = relationship(
        "PaymentTransaction", back_populates="order", cascade="all, delete-orphan"
    )

import hashlib
import hmac
import time
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.payments.models import PaymentTransactionSchema
from src.config.constants import OrderPaymentStatus, OrderStatus, TransactionStatus
from src.database.models import Order, PaymentLog, PaymentTransaction

WEBHOOK_SECRET = "test-webhook-secret"
WEBHOOK_API_KEY = "test-gateway-api-key"
USER_ID = "user-123"


def sign(body: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Signature header as the gateway would send it."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    if timestamp is None:
        return digest
    return f"t={timestamp},v1={digest}"


def signed_headers(body: bytes, **kwargs) -> dict:
    return {
        "Content-Type": "application/json",
        "X-Signature": sign(body, timestamp=int(time.time()), **kwargs),
    }


class PaymentStore:
    """Seeds and inspects the test database directly, bypassing the service."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add_order(
        self,
        user_id: str = USER_ID,
        status: str = OrderStatus.PENDING.value,
        payment_status: str = OrderPaymentStatus.PENDING.value,
    ) -> str:
        async with self.session_factory() as session:
            order = Order(user_id=user_id, status=status, payment_status=payment_status)
            session.add(order)
            await session.commit()
            return order.id

    async def add_transaction(
        self,
        order_id: str,
        reference: str,
        gateway_id: Optional[str] = None,
        status: str = TransactionStatus.PENDING.value,
        user_id: str = USER_ID,
    ) -> PaymentTransactionSchema:
        async with self.session_factory() as session:
            transaction = PaymentTransaction(
                order_id=order_id,
                user_id=user_id,
                transaction_reference=reference,
                gateway_transaction_id=gateway_id,
                status=status,
                provider="zenopay",
            )
            session.add(transaction)
            await session.commit()
            await session.refresh(transaction)
            return PaymentTransactionSchema.model_validate(transaction)

    async def get_transaction(self, transaction_id: str) -> PaymentTransaction:
        async with self.session_factory() as session:
            return await session.get(PaymentTransaction, transaction_id)

    async def get_order(self, order_id: str) -> Order:
        async with self.session_factory() as session:
            return await session.get(Order, order_id)

    async def get_logs(self, transaction_id: Optional[str] = None) -> List[PaymentLog]:
        async with self.session_factory() as session:
            query = select(PaymentLog)
            if transaction_id:
                query = query.filter(PaymentLog.transaction_id == transaction_id)
            result = await session.execute(query)
            return list(result.scalars().all())

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.payments.models import PaymentTransactionSchema
from src.config.constants import SETTLED_TRANSACTION_STATUSES
from src.database.models.order import Order
from src.database.models.payment import PaymentLog, PaymentTransaction


class PaymentRepository:
    """
    Data-store contract used by the webhook pipeline.
    Every write runs in its own session and commits on its own, so one failed
    write never rolls back the writes before it.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_transactions(
        self,
        reference: Optional[str],
        gateway_id: Optional[str],
        limit: int = 2,
    ) -> List[PaymentTransactionSchema]:
        """Rows whose reference OR gateway id matches; at most ``limit`` rows."""
        conditions = []
        if reference:
            conditions.append(PaymentTransaction.transaction_reference == reference)
        if gateway_id:
            conditions.append(PaymentTransaction.gateway_transaction_id == gateway_id)
        if not conditions:
            return []

        async with self._session_factory() as session:
            result = await session.execute(
                select(PaymentTransaction).filter(or_(*conditions)).limit(limit)
            )
            return [
                PaymentTransactionSchema.model_validate(t)
                for t in result.scalars().all()
            ]

    async def get_transaction_by_reference(
        self, reference: str
    ) -> Optional[PaymentTransactionSchema]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PaymentTransaction).filter(
                    PaymentTransaction.transaction_reference == reference
                )
            )
            transaction = result.scalars().first()
            if not transaction:
                return None
            return PaymentTransactionSchema.model_validate(transaction)

    async def update_transaction(self, transaction_id: str, values: Dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(PaymentTransaction)
                .where(PaymentTransaction.id == transaction_id)
                .values(**values)
            )
            await session.commit()

    async def update_order(self, order_id: str, values: Dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(Order).where(Order.id == order_id).values(**values)
            )
            await session.commit()

    async def has_settled_sibling(self, order_id: str, transaction_id: str) -> bool:
        """Whether another transaction on the order is completed or processing."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(PaymentTransaction)
                .where(
                    PaymentTransaction.order_id == order_id,
                    PaymentTransaction.id != transaction_id,
                    PaymentTransaction.status.in_(SETTLED_TRANSACTION_STATUSES),
                )
            )
            return result.scalar_one() > 0

    async def insert_log(
        self,
        transaction_id: str,
        user_id: Optional[str],
        event_type: str,
        data: Optional[Dict[str, Any]],
    ) -> None:
        async with self._session_factory() as session:
            session.add(
                PaymentLog(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    event_type=event_type,
                    data=data,
                )
            )
            await session.commit()

from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.api.payments.models import PaymentTransactionSchema
from src.api.payments.repository import PaymentRepository
from src.config.constants import PaymentLogEvent
from src.shared.error_handler import ErrorHandler


class PaymentAuditLogger:
    """Appends payment_logs rows. A failed insert is logged, never raised."""

    def __init__(self, repository: PaymentRepository):
        self.repository = repository
        self._error_handler = ErrorHandler(__name__)

    async def record(
        self,
        transaction: PaymentTransactionSchema,
        event_type: PaymentLogEvent,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            await self.repository.insert_log(
                transaction_id=transaction.id,
                user_id=transaction.user_id,
                event_type=event_type.value,
                data=data,
            )
            return True
        except SQLAlchemyError as e:
            self._error_handler.log_write_failure(
                e,
                f"payment_logs insert ({event_type.value})",
                {
                    "transaction_id": transaction.id,
                    "reference": transaction.transaction_reference,
                },
            )
            return False

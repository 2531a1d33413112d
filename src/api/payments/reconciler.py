"""
Payment status reconciliation.

Maps a normalized webhook event onto payment_transactions / orders updates.
Writes within a transition are independent: a failing write is logged and the
next one still runs, so the gateway always gets its 2xx once we have made as
much progress as the store allows.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.api.payments.audit import PaymentAuditLogger
from src.api.payments.models import NormalizedWebhookEvent, PaymentTransactionSchema
from src.api.payments.repository import PaymentRepository
from src.config.constants import (
    DEFAULT_FAILURE_REASON,
    OrderPaymentStatus,
    OrderStatus,
    PaymentLogEvent,
    StatusBucket,
    TransactionStatus,
)
from src.shared.error_handler import ErrorHandler, is_missing_column_error
from src.shared.utils import utc_now


class PaymentStatusReconciler:
    def __init__(
        self,
        repository: PaymentRepository,
        audit_logger: Optional[PaymentAuditLogger] = None,
    ):
        self.repository = repository
        self.audit_logger = audit_logger or PaymentAuditLogger(repository)
        self._error_handler = ErrorHandler(__name__)

    async def reconcile(
        self, transaction: PaymentTransactionSchema, event: NormalizedWebhookEvent
    ) -> Optional[PaymentLogEvent]:
        """Apply the transition for ``event``; returns the logged event type, None if ignored."""
        handlers = {
            StatusBucket.SUCCESS: self._apply_success,
            StatusBucket.PENDING: self._apply_pending,
            StatusBucket.CANCELLED: self._apply_cancelled,
            StatusBucket.FAILED: self._apply_failed,
        }
        handler = handlers.get(event.bucket)
        if handler is None:
            self._error_handler.logger.warning(
                f"Unhandled webhook status/event: {event.raw_status or '(empty)'} "
                f"for {transaction.transaction_reference}"
            )
            return None
        return await handler(transaction, event)

    async def _write(
        self,
        operation: str,
        write: Callable[[], Awaitable[None]],
        transaction: PaymentTransactionSchema,
    ) -> bool:
        try:
            await write()
            return True
        except SQLAlchemyError as e:
            self._error_handler.log_write_failure(
                e, operation, self._context(transaction)
            )
            return False

    @staticmethod
    def _context(transaction: PaymentTransactionSchema) -> Dict[str, Any]:
        return {
            "transaction_id": transaction.id,
            "reference": transaction.transaction_reference,
            "order_id": transaction.order_id,
        }

    def _is_completed(self, transaction: PaymentTransactionSchema) -> bool:
        return transaction.status == TransactionStatus.COMPLETED.value

    async def _ignore_downgrade(
        self,
        transaction: PaymentTransactionSchema,
        event: NormalizedWebhookEvent,
        log_event: PaymentLogEvent,
    ) -> PaymentLogEvent:
        # Completed is terminal; a late pending/failed/cancelled is recorded only
        self._error_handler.logger.warning(
            f"Ignoring {event.bucket.value} webhook for completed transaction "
            f"{transaction.transaction_reference}"
        )
        await self.audit_logger.record(
            transaction,
            log_event,
            {
                "ignored": True,
                "reason": "transaction already completed",
                "webhook_status": event.raw_status,
            },
        )
        return log_event

    async def _apply_success(
        self, transaction: PaymentTransactionSchema, event: NormalizedWebhookEvent
    ) -> PaymentLogEvent:
        now = utc_now()
        gateway_id = (
            event.webhook_data.get("gateway_transaction_id")
            or transaction.gateway_transaction_id
        )

        if self._is_completed(transaction):
            # Redelivery: refresh forensic data, leave completed_at and the order alone
            await self._write(
                "payment_transactions refresh (duplicate success)",
                lambda: self.repository.update_transaction(
                    transaction.id,
                    {
                        "gateway_transaction_id": gateway_id,
                        "webhook_data": event.webhook_data,
                        "updated_at": now,
                    },
                ),
                transaction,
            )
        else:
            await self._write(
                "payment_transactions update (completed)",
                lambda: self.repository.update_transaction(
                    transaction.id,
                    {
                        "status": TransactionStatus.COMPLETED.value,
                        "gateway_transaction_id": gateway_id,
                        "completed_at": now,
                        "webhook_data": event.webhook_data,
                        "updated_at": now,
                    },
                ),
                transaction,
            )
            await self._mark_order_paid(transaction, now)

        await self.audit_logger.record(
            transaction, PaymentLogEvent.PAYMENT_COMPLETED, event.webhook_data
        )
        self._error_handler.logger.info(
            f"Payment completed successfully: {transaction.transaction_reference}"
        )
        return PaymentLogEvent.PAYMENT_COMPLETED

    async def _mark_order_paid(self, transaction: PaymentTransactionSchema, now) -> None:
        base_values = {
            "status": OrderStatus.PROCESSING.value,
            "payment_status": OrderPaymentStatus.PAID.value,
            "updated_at": now,
        }
        try:
            await self.repository.update_order(
                transaction.order_id, {**base_values, "paid_at": now}
            )
            return
        except SQLAlchemyError as e:
            self._error_handler.log_write_failure(
                e, "orders update (with paid_at)", self._context(transaction)
            )
            if not is_missing_column_error(e, "paid_at"):
                return

        # Legacy schema without orders.paid_at
        await self._write(
            "orders update retry (without paid_at)",
            lambda: self.repository.update_order(transaction.order_id, base_values),
            transaction,
        )

    async def _apply_pending(
        self, transaction: PaymentTransactionSchema, event: NormalizedWebhookEvent
    ) -> PaymentLogEvent:
        if self._is_completed(transaction):
            return await self._ignore_downgrade(
                transaction, event, PaymentLogEvent.PAYMENT_PENDING
            )

        if transaction.status != TransactionStatus.PENDING.value:
            await self._write(
                "payment_transactions update (pending)",
                lambda: self.repository.update_transaction(
                    transaction.id,
                    {"status": TransactionStatus.PENDING.value, "updated_at": utc_now()},
                ),
                transaction,
            )

        await self.audit_logger.record(
            transaction,
            PaymentLogEvent.PAYMENT_PENDING,
            {"message": "Payment is pending confirmation"},
        )
        self._error_handler.logger.info(
            f"Payment pending: {transaction.transaction_reference}"
        )
        return PaymentLogEvent.PAYMENT_PENDING

    async def _apply_cancelled(
        self, transaction: PaymentTransactionSchema, event: NormalizedWebhookEvent
    ) -> PaymentLogEvent:
        if self._is_completed(transaction):
            return await self._ignore_downgrade(
                transaction, event, PaymentLogEvent.PAYMENT_CANCELLED
            )

        now = utc_now()
        await self._write(
            "payment_transactions update (cancelled)",
            lambda: self.repository.update_transaction(
                transaction.id,
                {
                    "status": TransactionStatus.CANCELLED.value,
                    "cancelled_at": now,
                    "webhook_data": event.webhook_data,
                    "updated_at": now,
                },
            ),
            transaction,
        )
        await self._downgrade_order_payment(
            transaction, OrderPaymentStatus.CANCELLED, now
        )

        await self.audit_logger.record(
            transaction,
            PaymentLogEvent.PAYMENT_CANCELLED,
            {"message": "Payment was cancelled"},
        )
        self._error_handler.logger.info(
            f"Payment cancelled: {transaction.transaction_reference}"
        )
        return PaymentLogEvent.PAYMENT_CANCELLED

    async def _apply_failed(
        self, transaction: PaymentTransactionSchema, event: NormalizedWebhookEvent
    ) -> PaymentLogEvent:
        if self._is_completed(transaction):
            return await self._ignore_downgrade(
                transaction, event, PaymentLogEvent.PAYMENT_FAILED
            )

        now = utc_now()
        reason = event.failure_reason or DEFAULT_FAILURE_REASON
        await self._write(
            "payment_transactions update (failed)",
            lambda: self.repository.update_transaction(
                transaction.id,
                {
                    "status": TransactionStatus.FAILED.value,
                    "failure_reason": reason,
                    "failed_at": now,
                    "webhook_data": event.webhook_data,
                    "updated_at": now,
                },
            ),
            transaction,
        )
        await self._downgrade_order_payment(transaction, OrderPaymentStatus.FAILED, now)

        await self.audit_logger.record(
            transaction, PaymentLogEvent.PAYMENT_FAILED, {"reason": reason}
        )
        self._error_handler.logger.info(
            f"Payment failed: {transaction.transaction_reference} ({reason})"
        )
        return PaymentLogEvent.PAYMENT_FAILED

    async def _downgrade_order_payment(
        self,
        transaction: PaymentTransactionSchema,
        payment_status: OrderPaymentStatus,
        now,
    ) -> None:
        """Set the order's payment_status unless another attempt already paid it."""
        try:
            settled = await self.repository.has_settled_sibling(
                transaction.order_id, transaction.id
            )
        except SQLAlchemyError as e:
            self._error_handler.log_write_failure(
                e, "sibling transaction lookup", self._context(transaction)
            )
            return

        if settled:
            self._error_handler.logger.info(
                f"Order {transaction.order_id} already paid by another transaction; "
                f"keeping payment_status (webhook {payment_status.value})"
            )
            return

        await self._write(
            f"orders update ({payment_status.value})",
            lambda: self.repository.update_order(
                transaction.order_id,
                {"payment_status": payment_status.value, "updated_at": now},
            ),
            transaction,
        )

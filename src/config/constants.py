from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Statuses that mean an order has (or is about to have) been paid by a transaction
SETTLED_TRANSACTION_STATUSES = (
    TransactionStatus.COMPLETED.value,
    TransactionStatus.PROCESSING.value,
)


class StatusBucket(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    CANCELLED = "cancelled"
    FAILED = "failed"
    UNRECOGNIZED = "unrecognized"


class PaymentLogEvent(str, Enum):
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CANCELLED = "payment_cancelled"
    PAYMENT_FAILED = "payment_failed"


# Gateway status vocabularies, compared against the upper-cased raw status
SUCCESS_STATUSES = frozenset(
    {"SUCCESS", "SUCCEEDED", "COMPLETED", "APPROVED", "PAID", "SETTLED", "SUCCESSFUL"}
)
PENDING_STATUSES = frozenset({"PENDING", "PROCESSING", "AWAITING", "QUEUED"})
CANCELLED_STATUSES = frozenset({"CANCELLED", "CANCELED"})
FAILED_STATUSES = frozenset({"FAILED", "DECLINED", "ERROR", "REJECTED", "TIMEOUT"})

DEFAULT_FAILURE_REASON = "Payment failed"

# Postgres SQLSTATE for undefined_column
UNDEFINED_COLUMN_SQLSTATE = "42703"


class CacheTags:
    ORDERS = "orders"
    ADMIN_ORDERS = "admin:orders"
    PAYMENTS = "payments"

    @staticmethod
    def order(order_id: str) -> str:
        return f"order:{order_id}"

    @staticmethod
    def user_orders(user_id: str) -> str:
        return f"user-orders:{user_id}"

    @staticmethod
    def payment(transaction_id: str) -> str:
        return f"payment:{transaction_id}"

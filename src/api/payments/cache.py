"""
Payments-specific cache operations
"""

from typing import List, Optional

from src.api.payments.models import PaymentTransactionSchema
from src.config.cache_config import cache_config
from src.config.constants import CacheTags
from src.shared.cache_invalidation import (
    CacheInvalidationManager,
    cache_invalidation_manager,
)
from src.shared.utils import get_logger

logger = get_logger(__name__)


class PaymentsCache:
    """Payments domain cache operations"""

    def __init__(self, invalidation_manager: Optional[CacheInvalidationManager] = None):
        self.invalidation_manager = invalidation_manager or cache_invalidation_manager
        self.cache = self.invalidation_manager.cache
        self.prefix = cache_config.PREFIXES.get("payments", "payments")

    def get_status_key(self, reference: str) -> str:
        return self.cache.generate_key(self.prefix, "status", reference)

    def get_payment_status(self, reference: str) -> Optional[dict]:
        return self.cache.get(self.get_status_key(reference))

    def set_payment_status(
        self, reference: str, transaction_id: str, status_data: dict
    ) -> bool:
        ttl = cache_config.get_ttl("payment_status")
        return self.cache.set(
            self.get_status_key(reference),
            status_data,
            ttl_seconds=ttl,
            tags=(CacheTags.PAYMENTS, CacheTags.payment(transaction_id)),
        )

    @staticmethod
    def tags_for(transaction: PaymentTransactionSchema) -> List[str]:
        """Order and payment views affected by a reconciled transaction"""
        return [
            CacheTags.ORDERS,
            CacheTags.ADMIN_ORDERS,
            CacheTags.order(transaction.order_id),
            CacheTags.user_orders(transaction.user_id),
            CacheTags.PAYMENTS,
            CacheTags.payment(transaction.id),
        ]

    def invalidate_transaction(self, transaction: PaymentTransactionSchema) -> int:
        """Fire-and-forget: errors are logged, never raised"""
        try:
            return self.invalidation_manager.invalidate_tags(self.tags_for(transaction))
        except Exception as e:
            logger.warning(
                f"Revalidation error for {transaction.transaction_reference} (non-fatal): {e}"
            )
            return 0


# Global payments cache instance
payments_cache = PaymentsCache()

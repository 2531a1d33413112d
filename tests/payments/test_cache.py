from unittest.mock import MagicMock

from src.api.payments.cache import PaymentsCache
from src.api.payments.models import PaymentTransactionSchema
from src.shared.cache_invalidation import CacheInvalidationManager
from src.shared.core_cache import CoreCacheClient

TRANSACTION = PaymentTransactionSchema(
    id="tx-1",
    transaction_reference="R1",
    order_id="order-1",
    user_id="user-123",
    status="pending",
)


class TestCoreCacheClient:
    def test_invalidate_tag_drops_only_tagged_entries(self):
        cache = CoreCacheClient()
        cache.set("a", 1, tags=("orders", "order:1"))
        cache.set("b", 2, tags=("order:2",))
        cache.set("c", 3)

        assert cache.invalidate_tag("orders") == 1
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_stats_report_tags(self):
        cache = CoreCacheClient()
        cache.set("a", 1, tags=("payments",))
        cache.set("b", 2, tags=("payments", "payment:tx-1"))

        stats = cache.get_cache_stats()
        assert stats["total_keys"] == 2
        assert stats["tag_breakdown"] == {"payments": 2, "payment:tx-1": 1}


class TestPaymentsCache:
    def test_tags_for_transaction(self):
        assert PaymentsCache.tags_for(TRANSACTION) == [
            "orders",
            "admin:orders",
            "order:order-1",
            "user-orders:user-123",
            "payments",
            "payment:tx-1",
        ]

    def test_invalidate_transaction_drops_status_entry(self, payments_cache):
        payments_cache.set_payment_status("R1", "tx-1", {"status": "pending"})
        assert payments_cache.get_payment_status("R1") == {"status": "pending"}

        payments_cache.invalidate_transaction(TRANSACTION)

        assert payments_cache.get_payment_status("R1") is None

    def test_hooks_receive_every_tag(self):
        manager = CacheInvalidationManager(CoreCacheClient())
        hook = MagicMock(return_value=0)
        manager.register_invalidation_hook(hook)

        PaymentsCache(manager).invalidate_transaction(TRANSACTION)

        assert [c.args[0] for c in hook.call_args_list] == PaymentsCache.tags_for(TRANSACTION)

    def test_failing_hook_does_not_propagate(self):
        manager = CacheInvalidationManager(CoreCacheClient())
        manager.register_invalidation_hook(MagicMock(side_effect=RuntimeError("cdn down")))
        cache = PaymentsCache(manager)
        cache.set_payment_status("R1", "tx-1", {"status": "pending"})

        cache.invalidate_transaction(TRANSACTION)

        assert cache.get_payment_status("R1") is None

    def test_failing_cache_does_not_propagate(self):
        manager = MagicMock()
        manager.invalidate_tags.side_effect = RuntimeError("cache down")

        assert PaymentsCache(manager).invalidate_transaction(TRANSACTION) == 0

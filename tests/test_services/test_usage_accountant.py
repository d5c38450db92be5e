"""
UsageAccountant批量记账测试
"""

import asyncio

import pytest

from app.core.retry import RetryPolicy
from app.services.usage_accountant import UsageAccountant


@pytest.mark.asyncio
class TestUsageAccountant:

    async def test_flush_coalesces_by_discount(self, usage_store, no_wait_retry):
        accountant = UsageAccountant(usage_store, flush_delay=60, retry_policy=no_wait_retry)

        for discount_id in ["a", "b", "a", "a"]:
            await accountant.enqueue(discount_id)
        await accountant.flush()

        assert sorted(usage_store.writes) == [("a", 3), ("b", 1)]
        assert accountant.pending_count == 0
        await accountant.close()

    async def test_timer_flushes_after_delay(self, usage_store, no_wait_retry):
        accountant = UsageAccountant(usage_store, flush_delay=0.01, retry_policy=no_wait_retry)

        await accountant.enqueue("a")
        assert usage_store.writes == []

        await asyncio.sleep(0.1)

        assert usage_store.writes == [("a", 1)]
        assert accountant.pending_count == 0

    async def test_timer_not_reset_by_later_events(self, usage_store, no_wait_retry):
        """定时器从第一条事件开始计时，后续事件不会推迟刷新"""
        accountant = UsageAccountant(usage_store, flush_delay=0.2, retry_policy=no_wait_retry)

        await accountant.enqueue("a")
        await asyncio.sleep(0.12)
        await accountant.enqueue("a")
        await asyncio.sleep(0.15)

        assert usage_store.writes == [("a", 2)]
        await accountant.close()

    async def test_batch_size_triggers_immediate_flush(self, usage_store, no_wait_retry):
        accountant = UsageAccountant(usage_store, batch_size=3, flush_delay=60, retry_policy=no_wait_retry)

        for _ in range(3):
            await accountant.enqueue("a")

        assert accountant.pending_count == 0
        await asyncio.sleep(0.01)
        assert usage_store.writes == [("a", 3)]

        await accountant.enqueue("b")
        assert accountant.pending_count == 1
        await accountant.close()
        assert usage_store.writes == [("a", 3), ("b", 1)]

    async def test_transient_failure_is_retried(self, usage_store_factory, no_wait_retry):
        store = usage_store_factory(failures=2)
        accountant = UsageAccountant(store, flush_delay=60, retry_policy=no_wait_retry)

        await accountant.enqueue("a")
        await accountant.enqueue("a")
        await accountant.flush()

        assert store.attempts == 3
        assert store.writes == [("a", 2)]

    async def test_exhausted_retries_are_dropped(self, usage_store_factory):
        """重试耗尽后丢弃，不向调用方抛出异常"""
        store = usage_store_factory(failures=10)
        accountant = UsageAccountant(store, flush_delay=60, retry_policy=RetryPolicy(max_attempts=2, delay=0))

        await accountant.enqueue("a")
        await accountant.enqueue("b")
        await accountant.flush()

        assert store.attempts == 4
        assert store.writes == []
        assert accountant.pending_count == 0

    async def test_failure_of_one_discount_does_not_block_others(self, usage_store_factory):
        store = usage_store_factory(failures=1)
        accountant = UsageAccountant(store, flush_delay=60, retry_policy=RetryPolicy(max_attempts=1, delay=0))

        await accountant.enqueue("a")
        await accountant.enqueue("b")
        await accountant.flush()

        assert len(store.writes) == 1
        assert store.attempts == 2

    async def test_close_flushes_pending(self, usage_store, no_wait_retry):
        accountant = UsageAccountant(usage_store, flush_delay=60, retry_policy=no_wait_retry)

        await accountant.enqueue("a")
        await accountant.enqueue("b")
        await accountant.close()

        assert sorted(usage_store.writes) == [("a", 1), ("b", 1)]

    async def test_flush_with_nothing_pending(self, usage_store):
        accountant = UsageAccountant(usage_store)

        await accountant.flush()

        assert usage_store.attempts == 0

    def test_invalid_batch_size(self, usage_store):
        with pytest.raises(ValueError):
            UsageAccountant(usage_store, batch_size=0)

"""
折扣码使用次数批量记账
验证通过的折扣码先进入进程内队列，按数量阈值或延时批量合并写入数据库
"""

import asyncio
from collections import Counter
from typing import Awaitable, List, Optional, Protocol, Set

import structlog

from app.core.retry import RetryPolicy

logger = structlog.get_logger()


class UsageStore(Protocol):
    """使用次数的持久化接口"""

    def increment_usage(self, discount_id: str, count: int) -> Awaitable[int]:
        ...


class UsageAccountant:
    """
    使用次数记账器

    - 队列达到 batch_size 时立即刷新
    - 否则第一条未刷新的事件启动一个 flush_delay 秒的定时器，后续事件不重置定时器
    - 刷新时按折扣ID合并计数，每个折扣ID只写一次
    - 写入失败按重试策略重试，重试耗尽后记录日志并丢弃，计数只会少记不会多记
    """

    def __init__(
        self,
        store: UsageStore,
        batch_size: int = 100,
        flush_delay: float = 1.0,
        retry_policy: Optional[RetryPolicy] = None
    ):
        if batch_size < 1:
            raise ValueError("batch_size 必须大于等于1")
        self.store = store
        self.batch_size = batch_size
        self.flush_delay = flush_delay
        self.retry_policy = retry_policy or RetryPolicy()

        self._pending: List[str] = []
        self._lock = asyncio.Lock()
        self._timer: Optional[asyncio.Task] = None
        self._flush_tasks: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def enqueue(self, discount_id: str) -> None:
        """记录一次使用，不向调用方抛出异常"""
        try:
            async with self._lock:
                self._pending.append(discount_id)

                if len(self._pending) >= self.batch_size:
                    self._cancel_timer()
                    self._spawn(self._flush_batch(self._take_pending()))
                elif self._timer is None:
                    self._timer = self._spawn(self._flush_after_delay())
        except Exception as e:
            logger.error("折扣使用次数入队失败", discount_id=discount_id, error=str(e))

    async def flush(self) -> None:
        """立即刷新当前队列"""
        async with self._lock:
            self._cancel_timer()
            batch = self._take_pending()
        await self._flush_batch(batch)

    async def close(self) -> None:
        """停止定时器，写入剩余事件并等待进行中的刷新完成"""
        await self.flush()
        if self._flush_tasks:
            await asyncio.gather(*self._flush_tasks, return_exceptions=True)

    async def _flush_after_delay(self) -> None:
        await asyncio.sleep(self.flush_delay)
        async with self._lock:
            self._timer = None
            batch = self._take_pending()
        await self._flush_batch(batch)

    def _take_pending(self) -> List[str]:
        batch, self._pending = self._pending, []
        return batch

    def _cancel_timer(self) -> None:
        if self._timer is not None and self._timer is not asyncio.current_task():
            self._timer.cancel()
        self._timer = None

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)
        return task

    async def _flush_batch(self, batch: List[str]) -> None:
        if not batch:
            return

        counts = Counter(batch)
        logger.debug("刷新折扣使用次数", events=len(batch), discounts=len(counts))
        await asyncio.gather(*(
            self._write(discount_id, count) for discount_id, count in counts.items()
        ))

    async def _write(self, discount_id: str, count: int) -> None:
        try:
            await self.retry_policy.run(lambda: self.store.increment_usage(discount_id, count))
        except Exception as e:
            logger.error(
                "折扣使用次数写入失败，已丢弃",
                discount_id=discount_id,
                count=count,
                error=str(e)
            )

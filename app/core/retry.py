"""
固定间隔重试策略
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """重试策略：最多尝试 max_attempts 次，每次失败后固定等待 delay 秒"""

    max_attempts: int = 4
    delay: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts 必须大于等于1")
        if self.delay < 0:
            raise ValueError("delay 不能为负数")

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """执行操作，失败时按策略重试，重试耗尽后抛出最后一次异常"""
        attempt = 1
        while True:
            try:
                return await operation()
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    raise
                logger.warning(
                    "操作失败，准备重试",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e)
                )
                attempt += 1
                await asyncio.sleep(self.delay)

import redis.asyncio as aioredis
from typing import Optional
from app.core.config import settings
import structlog

"redis连接管理器"

logger = structlog.get_logger()


class RedisManager:
    """Redis连接管理器"""

    def __init__(self):
        self.redis_pool: Optional[aioredis.Redis] = None

    async def init_redis(self, redis_url: Optional[str] = None) -> aioredis.Redis:
        """初始化Redis连接池"""
        try:
            self.redis_pool = aioredis.from_url(
                redis_url or settings.redis_url_computed,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True
            )
            # 测试连接
            await self.redis_pool.ping()
            logger.info("Redis连接初始化成功")
            return self.redis_pool
        except Exception as e:
            logger.error("Redis连接初始化失败", error=str(e))
            raise

    async def close_redis(self) -> None:
        """关闭Redis连接"""
        if self.redis_pool:
            await self.redis_pool.aclose()
            self.redis_pool = None
            logger.info("Redis连接已关闭")

    async def health_check(self) -> dict:
        """Redis健康检查"""
        if not self.redis_pool:
            return {"status": "error", "message": "连接池未初始化"}
        try:
            await self.redis_pool.ping()
            return {"status": "healthy", "message": "连接正常"}
        except Exception as e:
            return {"status": "error", "message": f"连接失败: {str(e)}"}


# 全局Redis管理器实例
redis_manager = RedisManager()

"""
通用缓存工具
基于Redis的读穿缓存，只作参考，不作为权威数据源。
Redis不可用或未初始化时一律按未命中处理，调用方回源数据库。
"""

import json
import logging
from typing import Optional, Any
import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class SimpleCache:
    """带key前缀的JSON缓存"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, key_prefix: str = ""):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    async def init_redis(self, redis_client: Optional[redis.Redis] = None) -> None:
        """绑定Redis客户端，未传入时按配置新建连接"""
        if redis_client is not None:
            self.redis_client = redis_client
        elif self.redis_client is None:
            self.redis_client = redis.from_url(
                settings.redis_url_computed,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )

        await self.redis_client.ping()
        logger.info(f"缓存已就绪 prefix={self.key_prefix}")

    @property
    def is_ready(self) -> bool:
        return self.redis_client is not None

    def _get_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        """读取缓存，读取或解码失败都返回None"""
        if not self.is_ready:
            return None
        try:
            raw = await self.redis_client.get(self._get_key(key))
            return json.loads(raw) if raw else None
        except Exception as e:
            logger.warning(f"读取缓存失败 {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """写入缓存并设置过期时间（秒）"""
        if not self.is_ready:
            return False
        try:
            payload = json.dumps(value, default=str, ensure_ascii=False)
            await self.redis_client.setex(self._get_key(key), ttl, payload)
            return True
        except Exception as e:
            logger.warning(f"写入缓存失败 {key}: {e}")
            return False

    async def invalidate(self, *keys: str) -> bool:
        """删除一个或多个缓存项，有任意一项被删除时返回True"""
        if not self.is_ready or not keys:
            return False
        try:
            removed = await self.redis_client.delete(*(self._get_key(key) for key in keys))
            return removed > 0
        except Exception as e:
            logger.warning(f"删除缓存失败 {keys}: {e}")
            return False


# 折扣码缓存，key形如 discount:WELCOME50
discount_cache = SimpleCache(key_prefix="discount:")

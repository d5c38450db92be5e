"""
测试配置文件 - pytest fixtures和共用配置
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.retry import RetryPolicy
from app.models.database.discount_db import DiscountDB  # noqa: F401  注册表结构
from app.models.discount import DiscountRecord, DiscountType


# 固定的当前时间，保证有效期判断可重复
NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class InMemoryCache:
    """内存版折扣码缓存，接口与SimpleCache一致"""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def invalidate(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None


class RecordingUsageStore:
    """记录写入调用的使用次数存储，可指定前若干次失败"""

    def __init__(self, failures: int = 0, error: Exception = None):
        self.failures = failures
        self.error = error or ConnectionError("database unavailable")
        self.attempts = 0
        self.writes = []

    async def increment_usage(self, discount_id: str, count: int) -> int:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        self.writes.append((discount_id, count))
        return 1


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """测试数据库引擎 - 内存SQLite"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_db_engine):
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncSession:
    """测试数据库会话"""
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@pytest.fixture
def no_wait_retry():
    """不等待的重试策略"""
    return RetryPolicy(max_attempts=3, delay=0)


@pytest.fixture
def cache():
    return InMemoryCache()


def make_discount(**overrides) -> DiscountRecord:
    """构造折扣码记录，默认为当前有效的全分类百分比折扣"""
    data = {
        "id": "discount_001",
        "code": "WELCOME50",
        "type": DiscountType.PERCENTAGE,
        "value": Decimal("50"),
        "min_order_value": Decimal("20"),
        "max_discount": Decimal("100"),
        "usage_limit": None,
        "usage_count": 0,
        "applicable_categories": ["All"],
        "is_active": True,
        "valid_from": NOW - timedelta(days=1),
        "valid_until": NOW + timedelta(days=30),
    }
    data.update(overrides)
    return DiscountRecord(**data)


@pytest.fixture
def welcome50():
    """五折，最多优惠100，最低订单20"""
    return make_discount()


@pytest.fixture
def flat100():
    """固定减100，最低订单500"""
    return make_discount(
        id="discount_002",
        code="FLAT100",
        type=DiscountType.FIXED,
        value=Decimal("100"),
        min_order_value=Decimal("500"),
        max_discount=None,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def discount_factory():
    return make_discount


@pytest.fixture
def usage_store():
    return RecordingUsageStore()


@pytest.fixture
def usage_store_factory():
    return RecordingUsageStore


@pytest_asyncio.fixture
async def api_client(db_session, cache):
    """接口测试客户端，折扣服务使用内存SQLite和内存缓存，不经过应用生命周期"""
    from httpx import ASGITransport, AsyncClient

    from app.api.dependencies import get_discount_service
    from app.main import app
    from app.repositories.discount_repository import DiscountRepository
    from app.services.discount_service import DiscountService

    async def override_discount_service():
        return DiscountService(
            DiscountRepository(db_session),
            cache=cache,
            retry_policy=RetryPolicy(max_attempts=1, delay=0)
        )

    app.dependency_overrides[get_discount_service] = override_discount_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

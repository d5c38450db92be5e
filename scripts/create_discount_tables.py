"""
折扣码数据库表创建脚本，可选写入示例折扣码
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from app.core.config import settings
from app.core.database import Base

# 导入数据库模型以确保表被注册
from app.models.database.discount_db import DiscountDB
from app.repositories.discount_repository import DiscountRepository


def sample_discounts():
    """示例折扣码"""
    now = datetime.now(timezone.utc)
    return [
        {
            "code": "WELCOME50",
            "type": "PERCENTAGE",
            "value": Decimal("50"),
            "min_order_value": Decimal("20"),
            "max_discount": Decimal("100"),
            "applicable_categories": ["All"],
            "is_active": True,
            "valid_from": now,
            "valid_until": now + timedelta(days=90),
            "description": "新用户五折，最多优惠100元",
        },
        {
            "code": "FLAT100",
            "type": "FIXED",
            "value": Decimal("100"),
            "min_order_value": Decimal("500"),
            "usage_limit": 1000,
            "applicable_categories": ["All"],
            "is_active": True,
            "valid_from": now,
            "valid_until": now + timedelta(days=30),
            "description": "满500立减100",
        },
    ]


async def create_tables(seed: bool = False):
    """创建所有数据表"""
    engine = create_async_engine(settings.database_url_computed)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        print(f"数据表创建成功: {DiscountDB.__tablename__}")

    if seed:
        session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_maker() as session:
            repo = DiscountRepository(session)
            for data in sample_discounts():
                if await repo.code_exists(data["code"]):
                    print(f"折扣码 {data['code']} 已存在，跳过")
                    continue
                await repo.create(data)
                print(f"写入示例折扣码 {data['code']}")
            await session.commit()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_tables(seed="--seed" in sys.argv))

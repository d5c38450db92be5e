"""
折扣码数据库操作层
"""

import uuid
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone

from sqlalchemy import select, update, desc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.discount import DiscountRecord, normalize_code
from app.models.database.discount_db import DiscountDB


class DiscountRepository:
    """折扣码数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str) -> Optional[DiscountDB]:
        """根据折扣码获取记录，已软删除的记录不返回"""
        result = await self.db.execute(
            select(DiscountDB).where(
                DiscountDB.code == normalize_code(code),
                DiscountDB.deleted_at.is_(None)
            )
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, discount_id: str) -> Optional[DiscountDB]:
        """根据ID获取记录，已软删除的记录不返回"""
        result = await self.db.execute(
            select(DiscountDB).where(
                DiscountDB.id == discount_id,
                DiscountDB.deleted_at.is_(None)
            )
        )
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        """折扣码是否已被占用，包括已软删除的记录"""
        result = await self.db.execute(
            select(DiscountDB.id).where(DiscountDB.code == normalize_code(code))
        )
        return result.first() is not None

    async def list_discounts(self) -> List[DiscountDB]:
        """获取全部折扣码，按创建时间倒序"""
        result = await self.db.execute(
            select(DiscountDB)
            .where(DiscountDB.deleted_at.is_(None))
            .order_by(desc(DiscountDB.created_at))
        )
        return list(result.scalars().all())

    async def create(self, data: Dict[str, Any]) -> DiscountDB:
        """创建折扣码"""
        now = datetime.now(timezone.utc)
        db_discount = DiscountDB(
            id=data.get("id") or str(uuid.uuid4()),
            usage_count=0,
            created_at=now,
            updated_at=now,
            **{k: v for k, v in data.items() if k not in ("id", "usage_count", "created_at", "updated_at")}
        )
        self.db.add(db_discount)
        await self.db.flush()
        await self.db.refresh(db_discount)
        return db_discount

    async def update(self, discount_id: str, data: Dict[str, Any]) -> Optional[DiscountDB]:
        """更新折扣码字段"""
        db_discount = await self.get_by_id(discount_id)
        if not db_discount:
            return None

        for field, value in data.items():
            setattr(db_discount, field, value)
        db_discount.updated_at = datetime.now(timezone.utc)

        await self.db.flush()
        await self.db.refresh(db_discount)
        return db_discount

    async def soft_delete(self, discount_id: str) -> Optional[DiscountDB]:
        """软删除：停用并记录删除时间，保留行以免历史引用失效"""
        return await self.update(
            discount_id,
            {"is_active": False, "deleted_at": datetime.now(timezone.utc)}
        )

    async def get_usage_count(self, discount_id: str) -> Optional[int]:
        """读取当前已使用次数，记录不存在或已软删除时返回None"""
        result = await self.db.execute(
            select(DiscountDB.usage_count).where(
                DiscountDB.id == discount_id,
                DiscountDB.deleted_at.is_(None)
            )
        )
        return result.scalar_one_or_none()

    async def increment_usage(self, discount_id: str, count: int) -> int:
        """原子地增加使用次数，返回受影响的行数"""
        result = await self.db.execute(
            update(DiscountDB)
            .where(DiscountDB.id == discount_id)
            .values(usage_count=DiscountDB.usage_count + count)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def rollback(self) -> None:
        await self.db.rollback()

    def to_model(self, db_discount: DiscountDB) -> DiscountRecord:
        """转换为Pydantic模型"""
        return DiscountRecord(
            id=db_discount.id,
            code=db_discount.code,
            type=db_discount.type,
            value=db_discount.value,
            min_order_value=db_discount.min_order_value,
            max_discount=db_discount.max_discount,
            usage_limit=db_discount.usage_limit,
            usage_count=db_discount.usage_count or 0,
            applicable_categories=db_discount.applicable_categories or ["All"],
            is_active=db_discount.is_active,
            valid_from=db_discount.valid_from,
            valid_until=db_discount.valid_until,
            description=db_discount.description,
            created_at=db_discount.created_at,
            updated_at=db_discount.updated_at
        )


class DiscountUsageStore:
    """供使用次数批量写入使用，每次写入使用独立的会话"""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def increment_usage(self, discount_id: str, count: int) -> int:
        async with self.session_maker() as session:
            try:
                rows = await DiscountRepository(session).increment_usage(discount_id, count)
                await session.commit()
                return rows
            except Exception:
                await session.rollback()
                raise

"""
路由依赖注入
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.repositories.discount_repository import DiscountRepository
from app.services.discount_service import DiscountService
from app.services.usage_accountant import UsageAccountant


def get_usage_accountant(request: Request) -> Optional[UsageAccountant]:
    """应用启动时创建的使用次数记账器"""
    return getattr(request.app.state, "usage_accountant", None)


async def get_discount_service(
    session: AsyncSession = Depends(get_db_session),
    accountant: Optional[UsageAccountant] = Depends(get_usage_accountant)
) -> DiscountService:
    return DiscountService(DiscountRepository(session), accountant=accountant)

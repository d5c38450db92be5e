from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging
import uvicorn

from app.core.config import settings
from app.core.logging import configure_logging
from app.core.redis import redis_manager
from app.core.retry import RetryPolicy
from app.core.database import init_database, close_database, get_session_maker
from app.api.health import router as health_router
from app.api.discounts import router as discounts_router
from app.api.admin_discounts import router as admin_discounts_router
from app.api.cart import router as cart_router
from app.api.exceptions import (
    validation_exception_handler,
    database_exception_handler,
    general_exception_handler,
    business_exception_handler,
    BusinessException
)
from app.repositories.discount_repository import DiscountUsageStore
from app.services.common_cache import discount_cache
from app.services.usage_accountant import UsageAccountant

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("正在启动点餐价格服务")

    try:
        await init_database()
        logger.info("PostgreSQL数据库初始化成功")

        redis_client = await redis_manager.init_redis()
        await discount_cache.init_redis(redis_client)
        logger.info("Redis初始化成功")

        app.state.usage_accountant = UsageAccountant(
            DiscountUsageStore(get_session_maker()),
            batch_size=settings.usage_batch_size,
            flush_delay=settings.usage_flush_delay,
            retry_policy=RetryPolicy(
                max_attempts=settings.store_retry_attempts,
                delay=settings.store_retry_delay,
                retry_on=(SQLAlchemyError,)
            )
        )

        logger.info("应用启动完成")

    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    yield

    logger.info("正在关闭应用")
    await app.state.usage_accountant.close()
    await redis_manager.close_redis()
    await close_database()
    logger.info("应用关闭完成")


# 创建FastAPI应用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="餐厅点餐 - 购物车价格计算与折扣码服务",
    debug=settings.debug,
    lifespan=lifespan
)

# CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 注册路由
app.include_router(health_router)
app.include_router(discounts_router)
app.include_router(admin_discounts_router)
app.include_router(cart_router)

# 注册异常处理器
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(BusinessException, business_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": f"欢迎使用 {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

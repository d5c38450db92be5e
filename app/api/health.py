from fastapi import APIRouter
import logging

from app.core.config import settings
from app.core.redis import redis_manager
from app.core.database import database_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["健康检查"])


@router.get("")
async def health_check():
    """基础健康检查接口"""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


@router.get("/dependencies")
async def dependencies_health():
    """数据库和Redis连接健康检查"""
    pg_status = await database_service.health_check()
    redis_status = await redis_manager.health_check()

    health_status = {
        "postgresql": pg_status["status"] == "healthy",
        "redis": redis_status["status"] == "healthy",
        "details": {
            "postgresql": pg_status["message"],
            "redis": redis_status["message"]
        }
    }
    health_status["overall"] = health_status["postgresql"] and health_status["redis"]

    if not health_status["overall"]:
        logger.warning("依赖连接检查部分失败", extra={"health": health_status})
    return health_status

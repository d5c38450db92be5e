from pydantic_settings import BaseSettings
from typing import Optional
from decimal import Decimal
from enum import Enum


class Environment(str, Enum):

    """运行环境枚举"""
    TESTING = "testing"
    PRODUCTION = "production"


class Settings(BaseSettings):

    # 应用基础配置
    app_name: str = "Restaurant Ordering Pricing Service"
    app_version: str = "1.0.0"
    environment: Environment = Environment.TESTING
    debug: bool = True

    # 数据库配置
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "restaurant_db"
    db_user: str = "restaurant_user"
    db_password: str = "restaurant_password"

    # Redis配置 (折扣码缓存)
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    # 价格计算配置
    gst_rate: Decimal = Decimal("0.05")
    platform_fee: Decimal = Decimal("15.00")
    delivery_charge: Decimal = Decimal("40.00")
    free_delivery_threshold: Decimal = Decimal("500.00")

    # 折扣码配置
    discount_cache_ttl: int = 300  # 5分钟
    usage_batch_size: int = 100
    usage_flush_delay: float = 1.0  # 秒

    # 数据库重试配置 (1次调用 + 3次重试)
    store_retry_attempts: int = 4
    store_retry_delay: float = 1.0

    # 日志配置
    log_level: str = "INFO"

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def database_url_computed(self) -> str:
        """计算数据库URL"""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def redis_url_computed(self) -> str:
        """计算Redis URL"""
        if self.redis_url:
            return self.redis_url
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# 全局配置实例
settings = Settings()

"""
仓库包初始化文件 - 数据库访问层
"""

from .discount_repository import DiscountRepository, DiscountUsageStore

__all__ = [
    "DiscountRepository",
    "DiscountUsageStore"
]

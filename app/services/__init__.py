"""
服务包初始化文件
"""

from .common_cache import SimpleCache, discount_cache
from .price_calculator_service import FeeSchedule, calculate_discount_amount, compute_totals
from .usage_accountant import UsageAccountant
from .discount_service import DiscountService

__all__ = [
    "SimpleCache",
    "discount_cache",
    "FeeSchedule",
    "calculate_discount_amount",
    "compute_totals",
    "UsageAccountant",
    "DiscountService"
]

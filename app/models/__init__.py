"""
数据模型包初始化文件
"""

from .discount import (
    ALL_CATEGORIES,
    ActiveDiscount,
    DiscountCreate,
    DiscountRecord,
    DiscountType,
    DiscountUpdate,
    DiscountValidation,
    DiscountValidationRequest,
    ValidationFailure,
)
from .cart import CartDiscount, CartTotals, CartTotalsRequest, LineItem

__all__ = [
    "ALL_CATEGORIES",
    "ActiveDiscount",
    "DiscountCreate",
    "DiscountRecord",
    "DiscountType",
    "DiscountUpdate",
    "DiscountValidation",
    "DiscountValidationRequest",
    "ValidationFailure",
    "CartDiscount",
    "CartTotals",
    "CartTotalsRequest",
    "LineItem"
]

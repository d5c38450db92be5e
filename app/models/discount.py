"""
折扣码相关数据模型
"""

from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.models.types import Money


# 适用于全部分类的标记
ALL_CATEGORIES = "All"


class DiscountType(str, Enum):
    """折扣类型枚举"""
    PERCENTAGE = "PERCENTAGE"  # 按小计百分比折扣
    FIXED = "FIXED"  # 固定金额折扣
    BOGO = "BOGO"  # 买一送一，不参与金额计算


class ValidationFailure(str, Enum):
    """折扣码验证失败原因，按检查顺序排列"""
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    MIN_ORDER_NOT_MET = "min_order_not_met"
    CATEGORY_MISMATCH = "category_mismatch"


def normalize_code(code: str) -> str:
    """折扣码统一转大写"""
    return code.strip().upper()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """无时区的时间按UTC处理"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_discount_rules(
    discount_type: DiscountType,
    value: Decimal,
    valid_from: Optional[datetime],
    valid_until: Optional[datetime]
) -> None:
    """校验折扣值与有效期，不合法时抛出ValueError"""
    if discount_type == DiscountType.PERCENTAGE and not (Decimal("0") < value <= Decimal("100")):
        raise ValueError("percentage discount value must be between 0 and 100")
    if discount_type == DiscountType.FIXED and value <= 0:
        raise ValueError("fixed discount value must be greater than 0")
    if valid_from is not None and valid_until is not None:
        if ensure_aware(valid_until) <= ensure_aware(valid_from):
            raise ValueError("validUntil must be later than validFrom")


class CamelModel(BaseModel):
    """对外接口使用驼峰字段名"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DiscountRecord(CamelModel):
    """折扣码记录"""

    id: str = Field(..., description="折扣ID")
    code: str = Field(..., min_length=1, max_length=50, description="折扣码")
    type: DiscountType = Field(..., description="折扣类型")
    value: Money = Field(..., ge=0, description="折扣值")
    min_order_value: Optional[Money] = Field(None, ge=0, description="最低订单金额")
    max_discount: Optional[Money] = Field(None, ge=0, description="最大折扣金额")
    usage_limit: Optional[int] = Field(None, ge=1, description="总使用次数限制")
    usage_count: int = Field(default=0, ge=0, description="已使用次数")
    applicable_categories: List[str] = Field(
        default_factory=lambda: [ALL_CATEGORIES], description="适用分类"
    )
    is_active: bool = Field(default=True, description="是否启用")
    valid_from: datetime = Field(default_factory=utc_now, description="有效开始时间")
    valid_until: datetime = Field(..., description="有效结束时间")
    description: Optional[str] = Field(None, max_length=500, description="描述")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        return normalize_code(v)

    @field_validator("valid_from", "valid_until", "created_at", "updated_at")
    @classmethod
    def _ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)

    def is_available(self, now: Optional[datetime] = None) -> bool:
        """启用且处于有效期内"""
        now = now or utc_now()
        return self.is_active and self.valid_from <= now <= self.valid_until

    def is_usage_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def applies_to(self, categories: Iterable[str]) -> bool:
        """检查是否适用于购物车中的分类"""
        if ALL_CATEGORIES in self.applicable_categories:
            return True
        return any(category in self.applicable_categories for category in categories)


class ActiveDiscount(DiscountRecord):
    """应用到当前购物车的折扣，附带计算出的折扣金额"""

    discount_amount: Money = Field(..., description="折扣金额")


class DiscountValidation(BaseModel):
    """折扣码验证结果"""

    is_valid: bool
    discount: Optional[ActiveDiscount] = None
    failure: Optional[ValidationFailure] = None
    error_message: Optional[str] = None
    min_order_value: Optional[Decimal] = None

    @classmethod
    def success(cls, discount: ActiveDiscount) -> "DiscountValidation":
        return cls(is_valid=True, discount=discount)

    @classmethod
    def failed(
        cls,
        failure: ValidationFailure,
        message: str,
        min_order_value: Optional[Decimal] = None
    ) -> "DiscountValidation":
        return cls(
            is_valid=False,
            failure=failure,
            error_message=message,
            min_order_value=min_order_value
        )


class DiscountValidationRequest(CamelModel):
    """折扣码验证请求"""

    code: Optional[str] = None
    cart_total: Money = Field(default=Decimal("0"), ge=0)
    categories: List[str] = Field(default_factory=list)


class DiscountCreate(CamelModel):
    """创建折扣码"""

    code: str = Field(..., min_length=1, max_length=50)
    type: DiscountType
    value: Money = Field(..., ge=0)
    min_order_value: Optional[Money] = Field(None, ge=0)
    max_discount: Optional[Money] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    applicable_categories: List[str] = Field(default_factory=lambda: [ALL_CATEGORIES])
    is_active: bool = True
    valid_from: datetime = Field(default_factory=utc_now)
    valid_until: datetime
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        code = normalize_code(v)
        if not code:
            raise ValueError("code must not be blank")
        return code

    @field_validator("applicable_categories")
    @classmethod
    def _default_categories(cls, v: List[str]) -> List[str]:
        return v or [ALL_CATEGORIES]

    @model_validator(mode="after")
    def _check_rules(self) -> "DiscountCreate":
        check_discount_rules(self.type, self.value, self.valid_from, self.valid_until)
        return self


class DiscountUpdate(CamelModel):
    """更新折扣码，只更新传入的字段"""

    code: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[DiscountType] = None
    value: Optional[Money] = Field(None, ge=0)
    min_order_value: Optional[Money] = Field(None, ge=0)
    max_discount: Optional[Money] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    applicable_categories: Optional[List[str]] = None
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return normalize_code(v) if v is not None else v

"""
折扣码业务服务层
折扣码验证（缓存 → 数据库两级读取）以及后台管理的增删改查
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.api.exceptions import DiscountNotFoundError, DuplicateDiscountCodeError, InvalidDiscountError
from app.core.config import settings
from app.core.retry import RetryPolicy
from app.models.discount import (
    ALL_CATEGORIES,
    ActiveDiscount,
    DiscountCreate,
    DiscountRecord,
    DiscountUpdate,
    DiscountValidation,
    ValidationFailure,
    check_discount_rules,
    normalize_code,
    utc_now,
)
from app.repositories.discount_repository import DiscountRepository
from app.services.common_cache import discount_cache
from app.services.price_calculator_service import calculate_discount_amount
from app.services.usage_accountant import UsageAccountant

logger = structlog.get_logger()


NOT_FOUND_MESSAGE = "Invalid or expired discount code"
USAGE_LIMIT_MESSAGE = "This discount code has reached its usage limit"
CATEGORY_MISMATCH_MESSAGE = "This discount is not applicable to items in your cart"

# 更新时允许显式置空的字段
NULLABLE_FIELDS = {"min_order_value", "max_discount", "usage_limit", "description"}


class DiscountCache(Protocol):
    """折扣码缓存接口"""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        ...

    async def invalidate(self, key: str) -> bool:
        ...


def format_amount(amount: Decimal) -> str:
    """整数金额不显示小数位"""
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal("1")))
    return str(amount.normalize())


def check_discount_gates(
    record: DiscountRecord,
    cart_total: Decimal,
    categories: Iterable[str]
) -> Optional[DiscountValidation]:
    """
    按固定顺序检查使用次数、最低金额、适用分类，返回第一个不满足的结果；
    全部通过返回None
    """
    if record.is_usage_exhausted():
        return DiscountValidation.failed(ValidationFailure.USAGE_LIMIT_REACHED, USAGE_LIMIT_MESSAGE)

    if record.min_order_value is not None and cart_total < record.min_order_value:
        return DiscountValidation.failed(
            ValidationFailure.MIN_ORDER_NOT_MET,
            f"Minimum order value of ₹{format_amount(record.min_order_value)} required for this discount",
            min_order_value=record.min_order_value
        )

    if not record.applies_to(categories):
        return DiscountValidation.failed(ValidationFailure.CATEGORY_MISMATCH, CATEGORY_MISMATCH_MESSAGE)

    return None


class DiscountService:
    """折扣码业务服务"""

    def __init__(
        self,
        discount_repo: DiscountRepository,
        accountant: Optional[UsageAccountant] = None,
        cache: Optional[DiscountCache] = None,
        cache_ttl: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.discount_repo = discount_repo
        self.accountant = accountant
        self.cache = cache if cache is not None else discount_cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.discount_cache_ttl
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.store_retry_attempts,
            delay=settings.store_retry_delay,
            retry_on=(SQLAlchemyError,)
        )
        self.clock = clock

    async def get_discount_by_code(self, code: str, use_cache: bool = True) -> Optional[DiscountRecord]:
        """
        根据折扣码获取记录，缓存命中但已失效时清除缓存并回源

        缓存中的使用次数可能已过时，有次数限制的折扣码命中缓存后仍从数据库读取当前次数
        """
        code = normalize_code(code)
        now = self.clock()

        if use_cache:
            cached = await self.cache.get(code)
            if cached:
                record = self._parse_cached(cached)
                if record is not None and record.is_available(now):
                    record = await self._refresh_usage_count(record)
                    if record is not None:
                        return record
                await self.cache.invalidate(code)

        db_discount = await self.retry_policy.run(lambda: self._load_by_code(code))
        if not db_discount:
            return None

        record = self.discount_repo.to_model(db_discount)

        if use_cache and record.is_available(now):
            await self.cache.set(code, record.model_dump(), ttl=self.cache_ttl)

        return record

    async def validate_discount(
        self,
        code: str,
        cart_total: Decimal,
        categories: Iterable[str]
    ) -> DiscountValidation:
        """
        验证折扣码并计算折扣金额

        检查顺序固定：存在/有效期 → 使用次数 → 最低金额 → 适用分类，
        只返回第一个不满足的原因。验证通过后记一次使用（批量异步写入）。
        """
        cart_total = Decimal(str(cart_total))
        categories = list(categories)

        record = await self.get_discount_by_code(code)
        if record is None or not record.is_available(self.clock()):
            return DiscountValidation.failed(ValidationFailure.NOT_FOUND_OR_EXPIRED, NOT_FOUND_MESSAGE)

        failed = check_discount_gates(record, cart_total, categories)
        if failed is not None:
            logger.info("折扣码验证未通过", code=record.code, reason=failed.failure.value)
            return failed

        discount_amount = calculate_discount_amount(
            record.type, record.value, cart_total, record.max_discount
        )
        active = ActiveDiscount(**record.model_dump(), discount_amount=discount_amount)

        if self.accountant is not None:
            await self.accountant.enqueue(record.id)

        logger.info("折扣码验证通过", code=record.code, discount_amount=str(discount_amount))
        return DiscountValidation.success(active)

    async def list_discounts(self) -> List[DiscountRecord]:
        """获取全部折扣码"""
        db_discounts = await self.discount_repo.list_discounts()
        return [self.discount_repo.to_model(db_discount) for db_discount in db_discounts]

    async def get_discount(self, discount_id: str) -> DiscountRecord:
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if not db_discount:
            raise DiscountNotFoundError(discount_id)
        return self.discount_repo.to_model(db_discount)

    async def create_discount(self, discount_data: DiscountCreate) -> DiscountRecord:
        """创建折扣码"""
        if await self.discount_repo.code_exists(discount_data.code):
            raise DuplicateDiscountCodeError(discount_data.code)

        db_discount = await self.discount_repo.create(self._to_db_fields(discount_data.model_dump()))
        discount = self.discount_repo.to_model(db_discount)

        await self.cache.invalidate(discount.code)
        logger.info("创建折扣码", code=discount.code, discount_id=discount.id)
        return discount

    async def update_discount(self, discount_id: str, discount_data: DiscountUpdate) -> DiscountRecord:
        """更新折扣码，旧码和新码的缓存都会清除"""
        current = await self.get_discount(discount_id)
        changes = {
            field: value
            for field, value in discount_data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }

        new_code = changes.get("code")
        if new_code and new_code != current.code and await self.discount_repo.code_exists(new_code):
            raise DuplicateDiscountCodeError(new_code)

        merged = current.model_copy(update=changes)
        try:
            check_discount_rules(merged.type, merged.value, merged.valid_from, merged.valid_until)
        except ValueError as e:
            raise InvalidDiscountError(str(e))

        if "applicable_categories" in changes and not changes["applicable_categories"]:
            changes["applicable_categories"] = [ALL_CATEGORIES]

        db_discount = await self.discount_repo.update(discount_id, self._to_db_fields(changes))
        if not db_discount:
            raise DiscountNotFoundError(discount_id)
        discount = self.discount_repo.to_model(db_discount)

        await self.cache.invalidate(current.code)
        if discount.code != current.code:
            await self.cache.invalidate(discount.code)

        logger.info("更新折扣码", code=discount.code, discount_id=discount_id, fields=sorted(changes))
        return discount

    async def delete_discount(self, discount_id: str) -> None:
        """软删除折扣码"""
        db_discount = await self.discount_repo.soft_delete(discount_id)
        if not db_discount:
            raise DiscountNotFoundError(discount_id)

        await self.cache.invalidate(db_discount.code)
        logger.info("删除折扣码", code=db_discount.code, discount_id=discount_id)

    async def _load_by_code(self, code: str):
        try:
            return await self.discount_repo.get_by_code(code)
        except SQLAlchemyError:
            await self.discount_repo.rollback()
            raise

    async def _load_usage_count(self, discount_id: str) -> Optional[int]:
        try:
            return await self.discount_repo.get_usage_count(discount_id)
        except SQLAlchemyError:
            await self.discount_repo.rollback()
            raise

    async def _refresh_usage_count(self, record: DiscountRecord) -> Optional[DiscountRecord]:
        """有次数限制时用数据库中的使用次数覆盖缓存值，记录已删除时返回None"""
        if record.usage_limit is None:
            return record
        usage_count = await self.retry_policy.run(lambda: self._load_usage_count(record.id))
        if usage_count is None:
            return None
        return record.model_copy(update={"usage_count": usage_count})

    def _parse_cached(self, cached: Dict[str, Any]) -> Optional[DiscountRecord]:
        try:
            return DiscountRecord.model_validate(cached)
        except ValidationError as e:
            logger.warning("缓存中的折扣码数据无法解析", error=str(e))
            return None

    @staticmethod
    def _to_db_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        """时间统一转为UTC存储，枚举转为字符串"""
        fields = {}
        for key, value in data.items():
            if isinstance(value, datetime):
                value = value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
            elif isinstance(value, Enum):
                value = value.value
            fields[key] = value
        return fields

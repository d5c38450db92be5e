"""
价格计算服务
购物车小计、GST、平台费、配送费和折扣的计算，纯函数，不做缓存
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from app.core.config import Settings
from app.models.cart import CartTotals, LineItem
from app.models.discount import DiscountType


GST_RATE = Decimal("0.05")
PLATFORM_FEE = Decimal("15.00")
DELIVERY_CHARGE = Decimal("40.00")
FREE_DELIVERY_THRESHOLD = Decimal("500.00")


@dataclass(frozen=True)
class FeeSchedule:
    """费用配置"""

    gst_rate: Decimal = GST_RATE
    platform_fee: Decimal = PLATFORM_FEE
    delivery_charge: Decimal = DELIVERY_CHARGE
    free_delivery_threshold: Decimal = FREE_DELIVERY_THRESHOLD

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeeSchedule":
        return cls(
            gst_rate=settings.gst_rate,
            platform_fee=settings.platform_fee,
            delivery_charge=settings.delivery_charge,
            free_delivery_threshold=settings.free_delivery_threshold,
        )


DEFAULT_FEES = FeeSchedule()


def calculate_discount_amount(
    discount_type: DiscountType,
    value: Decimal,
    base_amount: Decimal,
    max_discount: Optional[Decimal] = None
) -> Decimal:
    """
    计算折扣金额
    百分比折扣按 base_amount 计算并受 max_discount 限制；
    固定金额折扣直接取 value，不受小计限制；买一送一不产生金额
    """
    if discount_type == DiscountType.PERCENTAGE:
        amount = base_amount * value / Decimal("100")
        if max_discount is not None:
            amount = min(amount, max_discount)
        return amount
    if discount_type == DiscountType.FIXED:
        return value
    return Decimal("0")


def compute_totals(
    line_items: Iterable[LineItem],
    active_discount=None,
    fees: FeeSchedule = DEFAULT_FEES
) -> CartTotals:
    """
    计算购物车价格明细

    active_discount 只需提供 type、value、max_discount 三个属性，
    ActiveDiscount 和 CartDiscount 均可直接传入
    """
    item_total = sum((item.price * item.quantity for item in line_items), Decimal("0"))
    gst = item_total * fees.gst_rate
    delivery_charge = Decimal("0") if item_total >= fees.free_delivery_threshold else fees.delivery_charge

    discount = Decimal("0")
    if active_discount is not None:
        discount = calculate_discount_amount(
            DiscountType(active_discount.type),
            active_discount.value,
            item_total,
            active_discount.max_discount
        )

    final_total = item_total + gst + fees.platform_fee + delivery_charge - discount

    return CartTotals(
        item_total=item_total,
        gst=gst,
        platform_fee=fees.platform_fee,
        delivery_charge=delivery_charge,
        discount=discount,
        final_total=final_total
    )

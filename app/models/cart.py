"""
购物车与价格明细模型
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, computed_field

from app.models.discount import CamelModel, DiscountType
from app.models.types import Money


class LineItem(CamelModel):
    """购物车条目"""

    id: str = Field(..., description="菜品ID")
    name: Optional[str] = Field(None, description="菜品名称")
    price: Money = Field(..., ge=0, description="单价")
    quantity: int = Field(..., ge=1, description="数量")
    category: str = Field(..., description="分类")

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class CartDiscount(CamelModel):
    """参与价格计算的折扣字段"""

    type: DiscountType
    value: Money = Field(..., ge=0)
    max_discount: Optional[Money] = Field(None, ge=0)


class CartTotals(CamelModel):
    """价格明细"""

    item_total: Money
    gst: Money
    platform_fee: Money
    delivery_charge: Money
    discount: Money
    final_total: Money

    @computed_field
    @property
    def is_negative(self) -> bool:
        """固定金额折扣不做截断，最终金额可能为负，由调用方决定如何展示"""
        return self.final_total < 0


class CartTotalsRequest(CamelModel):
    """价格计算请求"""

    items: List[LineItem] = Field(default_factory=list)
    discount: Optional[CartDiscount] = None

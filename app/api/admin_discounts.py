"""
后台折扣码管理接口
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_discount_service
from app.models.discount import DiscountCreate, DiscountUpdate
from app.services.discount_service import DiscountService

router = APIRouter(prefix="/api/admin/discounts", tags=["后台-折扣码"])


@router.get("")
async def list_discounts(service: DiscountService = Depends(get_discount_service)):
    """获取全部折扣码"""
    discounts = await service.list_discounts()
    return [discount.model_dump(mode="json", by_alias=True) for discount in discounts]


@router.get("/{discount_id}")
async def get_discount(discount_id: str, service: DiscountService = Depends(get_discount_service)):
    discount = await service.get_discount(discount_id)
    return discount.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_discount(
    payload: DiscountCreate,
    service: DiscountService = Depends(get_discount_service)
):
    """创建折扣码"""
    discount = await service.create_discount(payload)
    return discount.model_dump(mode="json", by_alias=True)


@router.put("/{discount_id}")
async def update_discount(
    discount_id: str,
    payload: DiscountUpdate,
    service: DiscountService = Depends(get_discount_service)
):
    """更新折扣码"""
    discount = await service.update_discount(discount_id, payload)
    return discount.model_dump(mode="json", by_alias=True)


@router.delete("/{discount_id}")
async def delete_discount(discount_id: str, service: DiscountService = Depends(get_discount_service)):
    """删除折扣码（软删除）"""
    await service.delete_discount(discount_id)
    return {"message": "Discount deleted successfully"}

from fastapi import APIRouter

from app.core.config import settings
from app.models.cart import CartTotalsRequest
from app.services.price_calculator_service import FeeSchedule, compute_totals

router = APIRouter(prefix="/api/cart", tags=["购物车"])


@router.post("/totals")
async def cart_totals(payload: CartTotalsRequest):
    """计算购物车价格明细"""
    totals = compute_totals(payload.items, payload.discount, FeeSchedule.from_settings(settings))
    return totals.model_dump(mode="json", by_alias=True)

"""
折扣码验证接口
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import structlog

from app.api.dependencies import get_discount_service
from app.models.discount import DiscountValidationRequest, ValidationFailure
from app.services.discount_service import DiscountService

logger = structlog.get_logger()

router = APIRouter(prefix="/api/discounts", tags=["折扣码"])


@router.post("/validate")
async def validate_discount(
    payload: DiscountValidationRequest,
    service: DiscountService = Depends(get_discount_service)
):
    """验证折扣码并返回折扣金额"""
    if not payload.code or not payload.code.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Discount code is required"}
        )

    try:
        validation = await service.validate_discount(payload.code, payload.cart_total, payload.categories)
    except Exception as e:
        logger.error("折扣码验证异常", code=payload.code, error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to validate discount code"}
        )

    if not validation.is_valid:
        status_code = (
            status.HTTP_404_NOT_FOUND
            if validation.failure == ValidationFailure.NOT_FOUND_OR_EXPIRED
            else status.HTTP_400_BAD_REQUEST
        )
        content = {"error": validation.error_message}
        if validation.min_order_value is not None:
            content["minOrderValue"] = float(validation.min_order_value)
        return JSONResponse(status_code=status_code, content=content)

    return {
        "success": True,
        "discount": validation.discount.model_dump(mode="json", by_alias=True)
    }

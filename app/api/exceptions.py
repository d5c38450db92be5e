"""
业务异常与全局异常处理器
所有错误响应统一为 {"error": message, ...}
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BusinessException(Exception):
    """业务异常基类"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class DiscountNotFoundError(BusinessException):
    """折扣码不存在"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, discount_id: str):
        super().__init__(f"Discount {discount_id} not found")
        self.discount_id = discount_id


class DuplicateDiscountCodeError(BusinessException):
    """折扣码重复"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, code: str):
        super().__init__(f"Discount code {code} already exists")
        self.code = code


class InvalidDiscountError(BusinessException):
    """折扣配置不合法"""


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """业务异常处理"""
    logger.info(f"业务异常 {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验异常处理"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())}
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """数据库异常处理"""
    logger.error(f"数据库异常 {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Database error"}
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未处理异常"""
    logger.exception(f"未处理的异常 {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )

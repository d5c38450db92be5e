"""
通用字段类型
"""

from decimal import Decimal

from pydantic import PlainSerializer
from typing import Annotated


# 金额：内部使用Decimal计算，JSON输出为数字
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

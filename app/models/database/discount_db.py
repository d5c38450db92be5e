"""
折扣码数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from app.core.database import Base


class DiscountDB(Base):
    """折扣码表"""

    __tablename__ = "discounts"

    # 主键和基本信息
    id = Column(String(50), primary_key=True, comment="折扣ID")
    code = Column(String(50), nullable=False, unique=True, index=True, comment="折扣码(大写)")
    type = Column(String(20), nullable=False, comment="折扣类型")

    # 折扣信息
    value = Column(Numeric(10, 2), nullable=False, comment="折扣值")
    min_order_value = Column(Numeric(10, 2), comment="最低订单金额")
    max_discount = Column(Numeric(10, 2), comment="最大折扣金额")

    # 使用限制
    usage_limit = Column(Integer, comment="总使用次数限制")
    usage_count = Column(Integer, nullable=False, default=0, comment="已使用次数")

    # 适用范围
    applicable_categories = Column(JSON, nullable=False, default=lambda: ["All"], comment="适用分类")

    # 状态和有效期
    is_active = Column(Boolean, nullable=False, default=True, index=True, comment="是否启用")
    valid_from = Column(DateTime(timezone=True), nullable=False, comment="有效开始时间")
    valid_until = Column(DateTime(timezone=True), nullable=False, index=True, comment="有效结束时间")
    deleted_at = Column(DateTime(timezone=True), index=True, comment="软删除时间")

    description = Column(Text, comment="描述")

    # 时间戳
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), comment="更新时间")

    __table_args__ = (
        {'comment': '折扣码表'}
    )

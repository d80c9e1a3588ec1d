"""
商品分类数据模型
商品分类是商品集同步的本地实体来源
"""
from sqlalchemy import Column, String, Integer, BigInteger, Text, DateTime, Index

from mb_core.database import Base

from ..utils.datetime_utils import utcnow


class ProductCategory(Base):
    """商品分类表"""
    __tablename__ = "product_categories"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    name = Column(String(200), nullable=False, comment="分类名称")
    slug = Column(String(200), nullable=False, unique=True, comment="URL别名")
    description = Column(Text, comment="分类描述")
    parent_id = Column(BigInteger, comment="父分类ID")

    created_at = Column(DateTime(timezone=True), default=utcnow, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, comment="更新时间")

    __table_args__ = (
        Index("ix_product_categories_parent", "parent_id"),
    )

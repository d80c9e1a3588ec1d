"""
远程资源映射数据模型
本地实体ID -> 远程资源ID 的持久化关联，按同步域隔离
"""
from datetime import datetime

from sqlalchemy import BigInteger, Integer, String, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from mb_core.database import Base

from ..utils.datetime_utils import utcnow


class RemoteResourceMapping(Base):
    """远程资源映射表"""
    __tablename__ = "remote_resource_mappings"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    domain: Mapped[str] = mapped_column(String(50), nullable=False, comment="同步域（如 product_sets）")
    local_id: Mapped[str] = mapped_column(String(100), nullable=False, comment="本地实体ID")
    # 仅在远程创建成功后写入，之后不再修改
    remote_id: Mapped[str] = mapped_column(String(100), nullable=False, comment="远程资源ID")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, comment="创建时间"
    )

    __table_args__ = (
        UniqueConstraint("domain", "local_id", name="uq_remote_mapping_domain_local"),
        UniqueConstraint("domain", "remote_id", name="uq_remote_mapping_domain_remote"),
        Index("ix_remote_mapping_domain", "domain"),
    )

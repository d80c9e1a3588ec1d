"""
商品分类实体提供者

从 product_categories 表读取分类，映射为可同步的 LocalEntity
"""

import asyncio
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ....models import ProductCategory
from ..payload import product_type_filter
from ..types import LocalEntity

logger = logging.getLogger(__name__)


class ProductCategoryProvider:
    """商品分类 -> LocalEntity"""

    def __init__(
        self,
        db: AsyncSession,
        store_base_url: str = "http://localhost",
        session_lock: Optional[asyncio.Lock] = None,
    ):
        self.db = db
        self.store_base_url = store_base_url.rstrip("/")
        # 与同一会话上的映射存储共用
        self.session_lock = session_lock or asyncio.Lock()

    def to_entity(self, category: ProductCategory) -> LocalEntity:
        """分类转实体，空的元数据字段不下发"""
        metadata: Dict[str, Any] = {
            "description": category.description,
            "external_url": f"{self.store_base_url}/?product_cat={category.slug}" if category.slug else None,
        }
        return LocalEntity(
            id=str(category.id),
            display_name=category.name,
            filter_criteria=product_type_filter(category.name),
            metadata={k: v for k, v in metadata.items() if v},
        )

    async def list_entities(self) -> List[LocalEntity]:
        async with self.session_lock:
            result = await self.db.execute(select(ProductCategory).order_by(ProductCategory.id))
            categories = result.scalars().all()
        logger.debug(f"Loaded {len(categories)} product categories")
        return [self.to_entity(c) for c in categories]

    async def get_by_id(self, entity_id: str) -> Optional[LocalEntity]:
        try:
            category_id = int(entity_id)
        except (TypeError, ValueError):
            logger.warning(f"Invalid product category id: {entity_id!r}")
            return None

        async with self.session_lock:
            category = await self.db.get(ProductCategory, category_id)
        return self.to_entity(category) if category else None

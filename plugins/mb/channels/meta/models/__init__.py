"""Meta 插件数据模型"""

from .product_categories import ProductCategory
from .resource_mappings import RemoteResourceMapping

__all__ = [
    "ProductCategory",
    "RemoteResourceMapping",
]

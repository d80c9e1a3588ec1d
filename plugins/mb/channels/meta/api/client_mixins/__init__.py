"""
Graph API 客户端 Mixins

将 MetaGraphAPIClient 按资源拆分为多个功能模块。
"""

from .base import GraphAPIClientBase
from .product_sets import ProductSetsMixin

__all__ = [
    "GraphAPIClientBase",
    "ProductSetsMixin",
]

"""Meta 插件服务层"""

from .sync.product_set_sync.product_set_sync_service import ProductSetSyncService

__all__ = [
    "ProductSetSyncService",
]

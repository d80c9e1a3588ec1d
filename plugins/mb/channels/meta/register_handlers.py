"""
Meta插件 - Handler注册
"""
import logging
logger = logging.getLogger(__name__)

PLUGIN_KEY = "mb.channels.meta"

SYNC_ALL_SERVICE_KEY = "meta_product_sets_sync_all"
ORPHAN_CLEANUP_SERVICE_KEY = "meta_product_sets_orphan_cleanup"


def register_meta_handlers(registry=None) -> None:
    """注册Meta插件的所有sync service handlers到全局注册表"""
    from plugins.mb.system.sync_service.services.handler_registry import get_registry
    from .services.sync.product_set_sync.product_set_sync_service import (
        cleanup_orphaned_product_sets,
        sync_all_product_sets,
    )

    registry = registry or get_registry()

    # 1. 商品集全量对账
    registry.register(
        service_key=SYNC_ALL_SERVICE_KEY,
        handler=sync_all_product_sets,
        name="Meta商品集全量同步",
        description="将所有商品分类对账到 Meta 商品目录的商品集（未同步的创建，已同步的更新）",
        plugin=PLUGIN_KEY,
        config_schema={}
    )
    logger.info(f"✓ Registered {SYNC_ALL_SERVICE_KEY} service handler")

    # 2. 孤立映射清理
    registry.register(
        service_key=ORPHAN_CLEANUP_SERVICE_KEY,
        handler=cleanup_orphaned_product_sets,
        name="Meta商品集孤立映射清理",
        description="删除本地分类已不存在的远程商品集，重试之前失败的删除",
        plugin=PLUGIN_KEY,
        config_schema={
            "batch_size": {
                "type": "integer",
                "default": 25,
                "minimum": 1,
                "maximum": 500,
                "description": "每批检查的映射数"
            }
        }
    )
    logger.info(f"✓ Registered {ORPHAN_CLEANUP_SERVICE_KEY} service handler")

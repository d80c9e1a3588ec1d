"""
MetaBridge Meta Channel Plugin
把商品分类同步为 Meta 商品目录中的商品集
"""
import logging

logger = logging.getLogger(__name__)

# 插件版本
__version__ = "1.0.0"


async def setup(event_bus=None) -> None:
    """
    插件初始化函数

    注册同步服务 handler，并订阅商品分类生命周期事件
    """
    from mb_core.event_bus import get_event_bus
    from .register_handlers import register_meta_handlers
    from .services.sync.event_handlers import register_product_set_event_handlers
    from .services.sync.product_set_sync.product_set_sync_service import handle_product_category_event

    register_meta_handlers()

    bus = event_bus or get_event_bus()
    await register_product_set_event_handlers(bus, handle_product_category_event)

    logger.info(f"Meta channel plugin initialized (version={__version__})")


async def teardown() -> None:
    """插件清理函数"""
    logger.info("Meta channel plugin shutting down...")

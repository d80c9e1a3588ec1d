"""
MetaBridge 同步服务系统插件

统一管理各渠道插件注册的后台同步服务Handler
"""
import logging
logger = logging.getLogger(__name__)

# 插件版本
__version__ = "1.0.0"


async def setup() -> None:
    """插件初始化函数"""
    from .services.handler_registry import get_registry

    registry = get_registry()
    logger.info(f"Sync service plugin initialized (version={__version__}, handlers={registry.count()})")


async def teardown() -> None:
    """插件清理函数"""
    logger.info("Sync service plugin shutting down...")

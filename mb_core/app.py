"""
MetaBridge 应用生命周期

启动顺序：日志 -> 数据库 -> 事件总线 -> 插件
也可直接执行一次已注册的同步服务：
    python -m mb_core.app meta_product_sets_sync_all
"""
import argparse
import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from mb_core.config import get_settings
from mb_core.database import get_db_manager
from mb_core.event_bus import EventBus, get_event_bus
from mb_core.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(event_bus: Optional[EventBus] = None) -> AsyncIterator[EventBus]:
    """应用生命周期管理"""
    from plugins.mb.channels import meta
    from plugins.mb.system import sync_service

    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)

    logger.info("Starting MetaBridge", version="1.0.0")

    db_manager = get_db_manager()
    if not await db_manager.check_connection():
        raise RuntimeError("Database connection failed")

    bus = event_bus or get_event_bus()
    await bus.initialize()

    await sync_service.setup()
    await meta.setup(event_bus=bus)
    logger.info("MetaBridge started successfully")

    try:
        yield bus
    finally:
        logger.info("Shutting down MetaBridge")
        await meta.teardown()
        await sync_service.teardown()
        await bus.shutdown()
        await db_manager.close()
        logger.info("MetaBridge shutdown complete")


async def run_service(service_key: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """在完整生命周期内执行一次同步服务"""
    from plugins.mb.system.sync_service.services.handler_registry import get_registry

    async with lifespan(EventBus(dispatch_local=True)):
        return await get_registry().run(service_key, config)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a MetaBridge sync service once")
    parser.add_argument("service_key", help="e.g. meta_product_sets_sync_all")
    parser.add_argument("--config", default="{}", help="JSON service config")
    args = parser.parse_args()

    result = asyncio.run(run_service(args.service_key, json.loads(args.config)))
    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()

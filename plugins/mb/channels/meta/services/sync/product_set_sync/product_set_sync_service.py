"""
商品集同步服务

商品集同步的主入口，负责按配置组装对账引擎各组件，
并提供同步服务注册表使用的 handler。
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mb_core.config import Settings, get_settings
from mb_core.database import get_db_manager
from mb_core.utils.logger import LogContext, get_logger, trace_id_var

from ....api.client import MetaGraphAPIClient
from ..event_handlers import ProductSetEventHandler
from ..orphan_cleanup import CleanupResult, OrphanedMappingCleanup
from ..reconciliation_engine import EntityLocks, ReconciliationEngine
from ..state_store import SqlSyncStateStore
from ..sync_config import PRODUCT_SETS_DOMAIN, SyncConfiguration
from ..types import SyncReport
from .category_provider import ProductCategoryProvider
from .remote_client import GraphProductSetClient

logger = get_logger(__name__)

# 进程内共享的 local_id 锁表（事件处理与批量同步跨会话串行）
_entity_locks = EntityLocks()


class ProductSetSyncService:
    """商品集同步服务"""

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        api_client: Optional[MetaGraphAPIClient] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self._api_client = api_client

    def build_engine(self, api_client: Optional[MetaGraphAPIClient]) -> ReconciliationEngine:
        """组装对账引擎"""
        config = SyncConfiguration.from_settings(self.settings)
        # 未连接时同步域必然禁用，引擎不会触达客户端
        client = (
            GraphProductSetClient(api_client, self.settings.graph_allow_live_product_set_deletion)
            if api_client is not None
            else None
        )
        # 提供者与映射存储共用一个会话，并发 worker 对会话的访问依次进行
        session_lock = asyncio.Lock()
        return ReconciliationEngine(
            domain=PRODUCT_SETS_DOMAIN,
            config=config,
            client=client,
            provider=ProductCategoryProvider(self.db, self.settings.store_base_url, session_lock=session_lock),
            store=SqlSyncStateStore(self.db, PRODUCT_SETS_DOMAIN, session_lock=session_lock),
            max_concurrency=self.settings.sync_all_concurrency,
            locks=_entity_locks,
        )

    @asynccontextmanager
    async def open_engine(self) -> AsyncIterator[ReconciliationEngine]:
        """打开引擎，退出时关闭自建的 API 客户端"""
        api_client = self._api_client
        owns_client = False
        if api_client is None and self.settings.is_graph_connected:
            api_client = MetaGraphAPIClient.from_settings(self.settings)
            owns_client = True

        try:
            with LogContext(
                trace_id=trace_id_var.get() or str(uuid.uuid4()),
                plugin="mb.channels.meta",
                catalog_id=self.settings.graph_catalog_id,
            ):
                yield self.build_engine(api_client)
        finally:
            if owns_client:
                await api_client.close()

    async def sync_all(self) -> SyncReport:
        async with self.open_engine() as engine:
            return await engine.sync_all()

    async def cleanup_orphans(self, batch_size: int = 25) -> CleanupResult:
        async with self.open_engine() as engine:
            return await OrphanedMappingCleanup(engine).run(batch_size=batch_size)

    async def handle_event(self, payload: Dict[str, Any]) -> None:
        async with self.open_engine() as engine:
            await ProductSetEventHandler(engine).handle(payload)


async def sync_all_product_sets(config: Dict[str, Any]) -> Dict[str, Any]:
    """同步服务 handler：全量对账商品集"""
    db_manager = get_db_manager()
    async with db_manager.get_session() as db:
        report = await ProductSetSyncService(db).sync_all()
    return report.to_dict()


async def cleanup_orphaned_product_sets(config: Dict[str, Any]) -> Dict[str, Any]:
    """同步服务 handler：清理孤立商品集映射"""
    batch_size = int(config.get("batch_size", 25))
    db_manager = get_db_manager()
    async with db_manager.get_session() as db:
        result = await ProductSetSyncService(db).cleanup_orphans(batch_size=batch_size)
    return result.to_dict()


async def handle_product_category_event(payload: Dict[str, Any]) -> None:
    """事件总线 handler：每个事件使用独立数据库会话"""
    db_manager = get_db_manager()
    async with db_manager.get_session() as db:
        await ProductSetSyncService(db).handle_event(payload)

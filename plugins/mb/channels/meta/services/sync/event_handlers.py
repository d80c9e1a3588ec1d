"""
商品分类生命周期事件 -> 对账引擎

事件负载：{"entity_id": "<分类ID>", "change_kind": "created|updated|deleted"}
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from mb_core.event_bus import EventBus
from mb_core.utils.logger import get_logger

from .contracts import LocalEntityProvider
from .exceptions import NotFoundLocally
from .reconciliation_engine import ReconciliationEngine
from .types import ChangeKind, LocalEntity, SyncOperation

logger = get_logger(__name__)

PRODUCT_CATEGORY_CREATED = "mb.catalog.product_category.created"
PRODUCT_CATEGORY_UPDATED = "mb.catalog.product_category.updated"
PRODUCT_CATEGORY_DELETED = "mb.catalog.product_category.deleted"

PRODUCT_CATEGORY_TOPICS = (
    PRODUCT_CATEGORY_CREATED,
    PRODUCT_CATEGORY_UPDATED,
    PRODUCT_CATEGORY_DELETED,
)


class ProductSetEventHandler:
    """商品分类事件处理器"""

    def __init__(self, engine: ReconciliationEngine, provider: Optional[LocalEntityProvider] = None):
        self.engine = engine
        self.provider = provider or engine.provider

    async def _resolve(self, entity_id: str) -> LocalEntity:
        entity = await self.provider.get_by_id(entity_id)
        if entity is None:
            raise NotFoundLocally(self.engine.domain, entity_id)
        return entity

    async def handle(self, payload: Dict[str, Any]) -> Optional[SyncOperation]:
        """
        处理单个事件

        Returns:
            执行的对账操作；实体已无法解析时返回 None

        Raises:
            ValueError: 未知的 change_kind
            RemoteResourceError: 引擎远程调用失败（交由事件总线处理）
        """
        entity_id = str(payload.get("entity_id") or "")
        if not entity_id:
            raise ValueError(f"Event payload missing entity_id: {payload}")

        change_kind = ChangeKind(payload.get("change_kind"))

        if change_kind == ChangeKind.DELETED:
            entity = await self.provider.get_by_id(entity_id) or LocalEntity.tombstone(entity_id)
            return await self.engine.on_entity_deleted(entity)

        try:
            entity = await self._resolve(entity_id)
        except NotFoundLocally as e:
            logger.info("Ignoring event for unresolvable entity", entity_id=entity_id,
                        change_kind=change_kind.value, detail=e.detail)
            return None

        return await self.engine.on_entity_created_or_updated(entity)


EventCallback = Callable[[Dict[str, Any]], Awaitable[Any]]


async def register_product_set_event_handlers(bus: EventBus, handler: EventCallback) -> None:
    """
    订阅商品分类生命周期事件

    handler 接收事件负载；插件运行时传入按事件开启会话的 handle_product_category_event，
    也可以直接传入 ProductSetEventHandler.handle。
    """
    for topic in PRODUCT_CATEGORY_TOPICS:
        await bus.subscribe(topic, handler)
    logger.info("Product set event handlers registered", topics=list(PRODUCT_CATEGORY_TOPICS))

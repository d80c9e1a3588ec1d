"""
Meta同步模块

- reconciliation_engine: 对账引擎（本地实体 -> 远程资源）
- state_store: 映射存储
- event_handlers: 商品分类生命周期事件
- orphan_cleanup: 孤立映射清理
- product_set_sync: 商品集域的具体实现
"""

from .types import ChangeKind, LocalEntity, OperationKind, SyncOperation, SyncReport
from .sync_config import PRODUCT_SETS_DOMAIN, SyncConfiguration
from .state_store import InMemorySyncStateStore, SqlSyncStateStore
from .reconciliation_engine import EntityLocks, ReconciliationEngine
from .exceptions import NotFoundLocally, SyncAbortedError

__all__ = [
    # 类型
    "ChangeKind",
    "LocalEntity",
    "OperationKind",
    "SyncOperation",
    "SyncReport",
    # 配置
    "PRODUCT_SETS_DOMAIN",
    "SyncConfiguration",
    # 存储
    "InMemorySyncStateStore",
    "SqlSyncStateStore",
    # 引擎
    "EntityLocks",
    "ReconciliationEngine",
    "NotFoundLocally",
    "SyncAbortedError",
]

"""
同步引擎异常
"""
from typing import TYPE_CHECKING

from mb_core.utils.errors import MetaBridgeException, NotFoundError

if TYPE_CHECKING:
    from .types import SyncReport


class NotFoundLocally(NotFoundError):
    """事件引用的本地实体已无法解析（可能在事件发出后被删除）"""

    def __init__(self, domain: str, entity_id: str):
        super().__init__(code="LOCAL_ENTITY_NOT_FOUND", resource=f"{domain} entity {entity_id}")
        self.domain = domain
        self.entity_id = entity_id


class SyncAbortedError(MetaBridgeException):
    """批量同步因系统性错误（凭证失效）中止"""

    def __init__(self, report: "SyncReport", cause: Exception):
        super().__init__(
            status=401,
            code="SYNC_ABORTED",
            title="Sync Aborted",
            detail=f"{report.domain} sync aborted after {len(report.results)} entities: {cause}",
        )
        self.report = report
        self.cause = cause

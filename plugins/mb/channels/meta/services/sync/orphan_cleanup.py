"""
孤立映射清理

本地实体已删除但远程删除失败（或事件丢失）时，映射会残留。
本任务遍历映射，对本地已无法解析的实体重新发起删除对账。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from mb_core.utils.logger import get_logger

from ...api.errors import AuthError
from .reconciliation_engine import ReconciliationEngine
from .types import LocalEntity, OperationKind

logger = get_logger(__name__)


@dataclass
class CleanupResult:
    """清理结果"""
    checked: int = 0
    deleted: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)
    skipped_disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if self.skipped_disabled:
            message = "orphan cleanup skipped: sync is disabled"
        else:
            message = f"checked={self.checked}, deleted={self.deleted}, failed={self.failed}"
        return {
            "records_processed": self.checked,
            "records_updated": self.deleted,
            "message": message,
            "failed_ids": self.failed_ids,
        }


class OrphanedMappingCleanup:
    """孤立映射清理任务"""

    def __init__(self, engine: ReconciliationEngine):
        self.engine = engine

    async def run(self, batch_size: int = 25) -> CleanupResult:
        """
        执行清理

        Args:
            batch_size: 每批检查的映射数量（按批输出进度日志）

        Returns:
            清理结果；单个映射失败只计数不中断，AuthError 直接抛出
        """
        result = CleanupResult()
        engine = self.engine

        if not engine.is_enabled:
            result.skipped_disabled = True
            return result

        mappings = await engine.store.list_mappings()
        batch_size = max(1, batch_size)

        for start in range(0, len(mappings), batch_size):
            batch = mappings[start:start + batch_size]

            for mapping in batch:
                result.checked += 1
                if await engine.provider.get_by_id(mapping.local_id) is not None:
                    continue

                try:
                    operation = await engine.on_entity_deleted(LocalEntity.tombstone(mapping.local_id))
                except AuthError:
                    raise
                except Exception as e:
                    result.failed += 1
                    result.failed_ids.append(mapping.local_id)
                    logger.warning(
                        "Orphan mapping cleanup failed",
                        domain=engine.domain,
                        local_id=mapping.local_id,
                        remote_id=mapping.remote_id,
                        error=str(e),
                    )
                    continue

                if operation.kind == OperationKind.DELETE:
                    result.deleted += 1

            logger.info(
                "Orphan cleanup progress",
                domain=engine.domain,
                checked=result.checked,
                total=len(mappings),
                deleted=result.deleted,
                failed=result.failed,
            )

        return result

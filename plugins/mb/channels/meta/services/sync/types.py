"""
同步领域类型

LocalEntity 由宿主系统拥有，引擎只在一次对账调用期间借用；
SyncOperation 是一次对账决策，不持久化。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeKind(str, Enum):
    """本地实体生命周期事件类型"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class OperationKind(str, Enum):
    """对账决策类型"""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SKIP = "skip"


class ResultStatus(str, Enum):
    """单个实体的对账结果"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LocalEntity:
    """可同步的本地实体（如商品分类）"""
    id: str
    display_name: str
    filter_criteria: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def tombstone(cls, entity_id: str) -> "LocalEntity":
        """仅携带ID的实体，用于本地记录已不存在时的删除对账"""
        return cls(id=str(entity_id), display_name="")


@dataclass(frozen=True)
class SyncOperation:
    """一次对账决策"""
    kind: OperationKind
    local_entity: LocalEntity
    remote_id: Optional[str] = None


@dataclass(frozen=True)
class ResourceMapping:
    """本地ID与远程ID的关联"""
    domain: str
    local_id: str
    remote_id: str


@dataclass
class EntitySyncResult:
    """单个实体的对账结果"""
    local_id: str
    operation: OperationKind
    status: ResultStatus
    remote_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "local_id": self.local_id,
            "operation": self.operation.value,
            "status": self.status.value,
        }
        if self.remote_id:
            data["remote_id"] = self.remote_id
        if self.error:
            data["error"] = self.error
        if self.error_code:
            data["error_code"] = self.error_code
        return data


@dataclass
class SyncReport:
    """批量对账报告"""
    domain: str
    results: List[EntitySyncResult] = field(default_factory=list)
    aborted: bool = False
    skipped_disabled: bool = False

    def add(self, result: EntitySyncResult) -> None:
        self.results.append(result)

    def _count(self, operation: OperationKind, status: ResultStatus = ResultStatus.SUCCEEDED) -> int:
        return sum(1 for r in self.results if r.operation == operation and r.status == status)

    @property
    def created(self) -> int:
        return self._count(OperationKind.CREATE)

    @property
    def updated(self) -> int:
        return self._count(OperationKind.UPDATE)

    @property
    def deleted(self) -> int:
        return self._count(OperationKind.DELETE)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == ResultStatus.FAILED)

    @property
    def failed_ids(self) -> List[str]:
        return [r.local_id for r in self.results if r.status == ResultStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        """转换为同步服务 handler 的返回格式"""
        processed = len(self.results)
        changed = self.created + self.updated + self.deleted
        if self.skipped_disabled:
            message = f"{self.domain} sync is disabled"
        else:
            message = (
                f"{self.domain}: created={self.created}, updated={self.updated}, "
                f"deleted={self.deleted}, failed={self.failed}"
            )
            if self.aborted:
                message += " (aborted)"
        return {
            "records_processed": processed,
            "records_updated": changed,
            "message": message,
            "domain": self.domain,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "failed": self.failed,
            "aborted": self.aborted,
            "results": [r.to_dict() for r in self.results],
        }

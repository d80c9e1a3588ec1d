"""
对账引擎

把本地实体生命周期事件转换为最少的远程调用，并保证映射存储与远程状态一致：
- 映射只在远程创建成功后写入，只在远程删除成功后移除
- 更新失败不降级状态（远程资源仍以原ID存在）
- 同一 local_id 的对账串行执行
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from mb_core.utils.logger import get_logger

from ...api.errors import AmbiguousResponseError, AuthError, RemoteResourceError
from .contracts import LocalEntityProvider, RemoteResourceClient, SyncStateStore
from .exceptions import SyncAbortedError
from .payload import build_product_set_payload
from .sync_config import SyncConfiguration
from .types import (
    ChangeKind,
    EntitySyncResult,
    LocalEntity,
    OperationKind,
    ResultStatus,
    SyncOperation,
    SyncReport,
)

logger = get_logger(__name__)

PayloadBuilder = Callable[[LocalEntity], Dict[str, Any]]


class EntityLocks:
    """
    按 local_id 的锁表

    持有者和等待者都释放后删除条目，锁表大小只与在途实体数相关。
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, local_id: str) -> bool:
        return local_id in self._locks

    @asynccontextmanager
    async def hold(self, local_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(local_id)
        if lock is None:
            lock = self._locks[local_id] = asyncio.Lock()
        self._users[local_id] = self._users.get(local_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[local_id] -= 1
            if self._users[local_id] == 0:
                del self._users[local_id]
                del self._locks[local_id]


class ReconciliationEngine:
    """本地实体 -> 远程资源 对账引擎"""

    def __init__(
        self,
        domain: str,
        config: SyncConfiguration,
        client: RemoteResourceClient,
        provider: LocalEntityProvider,
        store: SyncStateStore,
        payload_builder: Optional[PayloadBuilder] = None,
        max_concurrency: int = 1,
        locks: Optional[EntityLocks] = None,
    ):
        """
        Args:
            domain: 同步域（如 product_sets）
            config: 同步开关配置
            client: 远程资源客户端
            provider: 本地实体来源
            store: 映射存储
            payload_builder: 负载构建函数，默认构建商品集负载
            max_concurrency: sync_all 的最大并发数，1 表示严格顺序
            locks: 按 local_id 的锁表，多个引擎实例共享时跨实例串行
        """
        self.domain = domain
        self.config = config
        self.client = client
        self.provider = provider
        self.store = store
        self.payload_builder = payload_builder or build_product_set_payload
        self.max_concurrency = max(1, max_concurrency)
        self._locks = locks if locks is not None else EntityLocks()

    @property
    def is_enabled(self) -> bool:
        return self.config.is_sync_enabled(self.domain)

    def build_remote_payload(self, entity: LocalEntity) -> Dict[str, Any]:
        """构建远程负载（纯函数）"""
        return self.payload_builder(entity)

    async def plan(self, entity: LocalEntity, change_kind: ChangeKind) -> SyncOperation:
        """根据当前映射决定远程操作（不产生远程调用）"""
        remote_id = await self.store.get(entity.id)

        if change_kind == ChangeKind.DELETED:
            kind = OperationKind.DELETE if remote_id else OperationKind.SKIP
        else:
            kind = OperationKind.UPDATE if remote_id else OperationKind.CREATE

        return SyncOperation(kind=kind, local_entity=entity, remote_id=remote_id)

    async def _apply(self, operation: SyncOperation) -> SyncOperation:
        """执行对账决策，成功后更新映射"""
        entity = operation.local_entity

        if operation.kind == OperationKind.CREATE:
            remote_id = await self.client.create(self.build_remote_payload(entity))
            if not remote_id:
                raise AmbiguousResponseError(f"Create returned no remote id for {self.domain}:{entity.id}")
            await self.store.put(entity.id, remote_id)
            logger.info("Remote resource created", domain=self.domain, local_id=entity.id, remote_id=remote_id)
            return replace(operation, remote_id=remote_id)

        if operation.kind == OperationKind.UPDATE:
            await self.client.update(operation.remote_id, self.build_remote_payload(entity))
            logger.info("Remote resource updated", domain=self.domain, local_id=entity.id,
                        remote_id=operation.remote_id)
            return operation

        if operation.kind == OperationKind.DELETE:
            await self.client.delete(operation.remote_id)
            await self.store.remove(entity.id)
            logger.info("Remote resource deleted", domain=self.domain, local_id=entity.id,
                        remote_id=operation.remote_id)
            return operation

        return operation

    async def _reconcile(self, entity: LocalEntity, change_kind: ChangeKind) -> SyncOperation:
        async with self._locks.hold(entity.id):
            operation = await self.plan(entity, change_kind)
            if operation.kind == OperationKind.SKIP:
                logger.debug("Nothing to reconcile", domain=self.domain, local_id=entity.id,
                             change_kind=change_kind.value)
                return operation
            try:
                return await self._apply(operation)
            except RemoteResourceError as e:
                logger.warning(
                    "Remote operation failed",
                    domain=self.domain,
                    local_id=entity.id,
                    operation=operation.kind.value,
                    remote_id=operation.remote_id,
                    error=str(e),
                    error_code=e.code,
                )
                raise

    def _disabled(self, entity: LocalEntity) -> SyncOperation:
        logger.debug("Sync disabled, ignoring entity", domain=self.domain, local_id=entity.id)
        return SyncOperation(kind=OperationKind.SKIP, local_entity=entity)

    async def on_entity_created_or_updated(self, entity: LocalEntity) -> SyncOperation:
        """
        实体创建或更新

        未同步过则远程创建并写入映射；已同步则远程更新，映射不变。
        失败时异常抛给调用方，映射保持原状。
        """
        if not self.is_enabled:
            return self._disabled(entity)
        return await self._reconcile(entity, ChangeKind.UPDATED)

    async def on_entity_deleted(self, entity: LocalEntity) -> SyncOperation:
        """
        实体删除

        无映射时为幂等空操作；远程删除成功后移除映射，失败时保留映射以便重试。
        """
        if not self.is_enabled:
            return self._disabled(entity)
        return await self._reconcile(entity, ChangeKind.DELETED)

    async def sync_all(self) -> SyncReport:
        """
        批量对账所有本地实体

        各实体结果相互独立，单个失败记录后继续；
        AuthError 中止剩余实体并抛出 SyncAbortedError。
        """
        report = SyncReport(domain=self.domain)

        if not self.is_enabled:
            logger.info("Sync disabled, skipping sync_all", domain=self.domain)
            report.skipped_disabled = True
            return report

        entities = list(await self.provider.list_entities())
        logger.info("Starting sync_all", domain=self.domain, total=len(entities),
                    concurrency=self.max_concurrency)

        abort_causes: List[AuthError] = []

        if self.max_concurrency == 1:
            for entity in entities:
                if abort_causes:
                    break
                await self._sync_one(entity, report, abort_causes)
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def worker(entity: LocalEntity) -> None:
                async with semaphore:
                    await self._sync_one(entity, report, abort_causes)

            await asyncio.gather(*(worker(entity) for entity in entities))

        logger.info(
            "Finished sync_all",
            domain=self.domain,
            created=report.created,
            updated=report.updated,
            failed=report.failed,
            aborted=bool(abort_causes),
        )

        if abort_causes:
            report.aborted = True
            logger.error(
                "sync_all aborted by authentication error",
                domain=self.domain,
                attempted=len(report.results),
                total=len(entities),
                error=str(abort_causes[0]),
            )
            raise SyncAbortedError(report, abort_causes[0])

        return report

    async def _sync_one(self, entity: LocalEntity, report: SyncReport, abort_causes: List[AuthError]) -> None:
        """对账单个实体并把结果记入报告"""
        if abort_causes:
            return

        operation: Optional[SyncOperation] = None
        try:
            async with self._locks.hold(entity.id):
                operation = await self.plan(entity, ChangeKind.UPDATED)
                operation = await self._apply(operation)
        except AuthError as e:
            abort_causes.append(e)
            report.add(self._failure(entity, operation, e))
        except Exception as e:
            logger.error(
                "Entity sync failed",
                domain=self.domain,
                local_id=entity.id,
                operation=operation.kind.value if operation else None,
                error=str(e),
                exc_info=True,
            )
            report.add(self._failure(entity, operation, e))
        else:
            report.add(EntitySyncResult(
                local_id=entity.id,
                operation=operation.kind,
                status=ResultStatus.SUCCEEDED,
                remote_id=operation.remote_id,
            ))

    @staticmethod
    def _failure(entity: LocalEntity, operation: Optional[SyncOperation], error: Exception) -> EntitySyncResult:
        return EntitySyncResult(
            local_id=entity.id,
            operation=operation.kind if operation else OperationKind.SKIP,
            status=ResultStatus.FAILED,
            remote_id=operation.remote_id if operation else None,
            error=str(error),
            error_code=getattr(error, "code", None),
        )

"""
同步映射存储

- InMemorySyncStateStore: 进程内实现（单进程部署与测试）
- SqlSyncStateStore: remote_resource_mappings 表实现，每次写入立即提交
"""
import asyncio
from typing import Dict, List, Optional
import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ...models.resource_mappings import RemoteResourceMapping
from ...utils.datetime_utils import utcnow
from .types import ResourceMapping

logger = logging.getLogger(__name__)


class InMemorySyncStateStore:
    """内存映射存储"""

    def __init__(self, domain: str):
        self.domain = domain
        self._mappings: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, local_id: str) -> Optional[str]:
        async with self._lock:
            return self._mappings.get(local_id)

    async def put(self, local_id: str, remote_id: str) -> None:
        async with self._lock:
            self._mappings[local_id] = remote_id
        logger.debug(f"Stored mapping {self.domain}:{local_id} -> {remote_id}")

    async def remove(self, local_id: str) -> None:
        async with self._lock:
            self._mappings.pop(local_id, None)
        logger.debug(f"Removed mapping {self.domain}:{local_id}")

    async def list_mappings(self) -> List[ResourceMapping]:
        async with self._lock:
            return [
                ResourceMapping(domain=self.domain, local_id=local_id, remote_id=remote_id)
                for local_id, remote_id in sorted(self._mappings.items())
            ]


class SqlSyncStateStore:
    """
    数据库映射存储

    AsyncSession 不支持并发操作；与同一会话上的其他组件共享 session_lock，
    sync_all 并发执行时对会话的访问依次进行。
    """

    def __init__(self, db: AsyncSession, domain: str, session_lock: Optional[asyncio.Lock] = None):
        self.db = db
        self.domain = domain
        self.session_lock = session_lock or asyncio.Lock()

    async def _find(self, local_id: str) -> Optional[RemoteResourceMapping]:
        result = await self.db.execute(
            select(RemoteResourceMapping).where(
                RemoteResourceMapping.domain == self.domain,
                RemoteResourceMapping.local_id == local_id,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, local_id: str) -> Optional[str]:
        async with self.session_lock:
            mapping = await self._find(local_id)
        return mapping.remote_id if mapping else None

    async def put(self, local_id: str, remote_id: str) -> None:
        """
        写入映射

        覆盖时删除旧行再插入新行，remote_id 列本身从不原地修改。
        """
        async with self.session_lock:
            stored = await self._put(local_id, remote_id)
        if stored:
            logger.info(f"Stored mapping {self.domain}:{local_id} -> {remote_id}")

    async def _put(self, local_id: str, remote_id: str) -> bool:
        try:
            existing = await self._find(local_id)
            if existing is not None:
                if existing.remote_id == remote_id:
                    return False
                logger.warning(
                    f"Overwriting mapping {self.domain}:{local_id} "
                    f"({existing.remote_id} -> {remote_id})"
                )
                await self.db.delete(existing)
                await self.db.flush()

            self.db.add(RemoteResourceMapping(
                domain=self.domain,
                local_id=local_id,
                remote_id=remote_id,
                created_at=utcnow(),
            ))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return True

    async def remove(self, local_id: str) -> None:
        async with self.session_lock:
            try:
                await self.db.execute(
                    delete(RemoteResourceMapping).where(
                        RemoteResourceMapping.domain == self.domain,
                        RemoteResourceMapping.local_id == local_id,
                    )
                )
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        logger.info(f"Removed mapping {self.domain}:{local_id}")

    async def list_mappings(self) -> List[ResourceMapping]:
        async with self.session_lock:
            result = await self.db.execute(
                select(RemoteResourceMapping)
                .where(RemoteResourceMapping.domain == self.domain)
                .order_by(RemoteResourceMapping.local_id)
            )
            return [
                ResourceMapping(domain=m.domain, local_id=m.local_id, remote_id=m.remote_id)
                for m in result.scalars().all()
            ]

"""
同步引擎依赖的能力协议

引擎通过构造函数注入以下实现，测试时直接替换为内存实现或 AsyncMock。
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ...api.responses import GraphResponse
from .types import LocalEntity, ResourceMapping


class RemoteResourceClient(Protocol):
    """单一远程资源类型的增删改操作

    失败时抛出 RemoteResourceError 的子类；
    返回即代表远程已确认操作成功。
    """

    async def create(self, payload: Dict[str, Any]) -> str:
        """创建远程资源，返回远程ID"""
        ...

    async def update(self, remote_id: str, payload: Dict[str, Any]) -> GraphResponse:
        """更新远程资源"""
        ...

    async def delete(self, remote_id: str) -> GraphResponse:
        """删除远程资源"""
        ...


class LocalEntityProvider(Protocol):
    """本地实体来源"""

    async def list_entities(self) -> Sequence[LocalEntity]:
        """列出所有可同步的实体（有限、可重复遍历）"""
        ...

    async def get_by_id(self, entity_id: str) -> Optional[LocalEntity]:
        """按ID解析实体，不存在时返回 None"""
        ...


class SyncStateStore(Protocol):
    """本地ID -> 远程ID 映射存储（按同步域隔离）"""

    async def get(self, local_id: str) -> Optional[str]:
        ...

    async def put(self, local_id: str, remote_id: str) -> None:
        """无条件覆盖；只能在远程创建成功后调用"""
        ...

    async def remove(self, local_id: str) -> None:
        """只能在远程删除成功后调用"""
        ...

    async def list_mappings(self) -> List[ResourceMapping]:
        ...

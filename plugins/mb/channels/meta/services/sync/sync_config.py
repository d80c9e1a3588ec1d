"""
同步开关配置

按同步域描述当前是否允许同步，构造引擎时显式传入，而不是在运行时读取全局状态。
"""
from dataclasses import dataclass
from typing import FrozenSet

from mb_core.config import Settings

PRODUCT_SETS_DOMAIN = "product_sets"


@dataclass(frozen=True)
class SyncConfiguration:
    """各同步域的启用状态（只读）"""
    enabled_domains: FrozenSet[str] = frozenset()

    @classmethod
    def enabled_for(cls, *domains: str) -> "SyncConfiguration":
        return cls(enabled_domains=frozenset(domains))

    @classmethod
    def disabled(cls) -> "SyncConfiguration":
        return cls()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfiguration":
        """
        根据功能开关与连接状态推导

        未配置 Graph 访问令牌或目录ID时，所有同步域均视为禁用。
        """
        domains = []
        if settings.is_graph_connected and settings.product_sets_sync_enabled:
            domains.append(PRODUCT_SETS_DOMAIN)
        return cls(enabled_domains=frozenset(domains))

    def is_sync_enabled(self, domain: str) -> bool:
        return domain in self.enabled_domains

"""
限流器实现
使用令牌桶算法控制 Graph API 请求频率（基于 aiolimiter）
"""
from typing import Dict, Optional

from aiolimiter import AsyncLimiter


class TokenBucket:
    """令牌桶实现（基于 aiolimiter.AsyncLimiter）"""

    def __init__(self, rate: float, capacity: Optional[float] = None):
        """
        初始化令牌桶

        Args:
            rate: 每秒生成的令牌数
            capacity: 桶容量（默认等于rate）
        """
        self.rate = rate
        self.capacity = capacity or rate
        self._limiter = AsyncLimiter(max_rate=self.capacity, time_period=self.capacity / rate)

    async def acquire(self, tokens: int = 1) -> None:
        """获取令牌，不足时等待"""
        await self._limiter.acquire(tokens)


class RateLimiter:
    """
    多资源限流器
    为不同的 API 资源设置不同的限流策略
    """

    def __init__(self, rate_limit: Dict[str, float]):
        """
        初始化限流器

        Args:
            rate_limit: 资源类型到请求速率的映射
                例如: {"product_sets": 20, "default": 10}
        """
        self.buckets = {
            resource: TokenBucket(rate)
            for resource, rate in rate_limit.items()
        }

        if "default" not in self.buckets:
            self.buckets["default"] = TokenBucket(10)

    async def acquire(self, resource_type: str = "default", tokens: int = 1) -> None:
        """
        获取指定资源的令牌

        Args:
            resource_type: 资源类型
            tokens: 需要的令牌数
        """
        bucket = self.buckets.get(resource_type, self.buckets["default"])
        await bucket.acquire(tokens)

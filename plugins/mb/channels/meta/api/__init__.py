"""Meta Graph API 客户端模块"""

from .client import MetaGraphAPIClient
from .rate_limiter import RateLimiter

__all__ = [
    "MetaGraphAPIClient",
    "RateLimiter"
]

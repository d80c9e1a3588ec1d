"""
时间处理工具模块
统一处理所有datetime操作，确保所有datetime都是timezone-aware (UTC)
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    返回当前UTC时间（timezone-aware）

    Returns:
        datetime: 带UTC时区的当前时间
    """
    return datetime.now(timezone.utc)

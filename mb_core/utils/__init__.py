"""
MetaBridge 实用工具模块
"""

from .logger import get_logger, LogContext, setup_logging
from .errors import MetaBridgeException, NotFoundError

__all__ = [
    "get_logger",
    "LogContext",
    "setup_logging",
    "MetaBridgeException",
    "NotFoundError",
]

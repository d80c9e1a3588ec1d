"""
MetaBridge 数据模型包
"""
from .base import Base

__all__ = [
    "Base",
]

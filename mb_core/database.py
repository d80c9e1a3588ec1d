"""
MetaBridge 数据库连接和会话管理
"""
import logging
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine
)
from sqlalchemy import text, event

from mb_core.config import Settings, get_settings
from mb_core.utils.logger import get_logger
from mb_core.models.base import Base

logger = get_logger(__name__)

# 慢查询阈值（毫秒）
SLOW_QUERY_THRESHOLD_MS = 100

# 慢查询日志记录器
_slow_query_logger: Optional[logging.Logger] = None


def get_slow_query_logger() -> logging.Logger:
    """获取慢查询日志记录器（单例）"""
    global _slow_query_logger
    if _slow_query_logger is None:
        _slow_query_logger = logging.getLogger("slow_query")
        _slow_query_logger.setLevel(logging.INFO)
        _slow_query_logger.propagate = False  # 不传播到根日志

        log_dir = Path(__file__).parent.parent / "logs"
        log_dir.mkdir(exist_ok=True)

        # 10MB 轮转，保留 5 个文件
        handler = RotatingFileHandler(
            log_dir / "slow.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
            delay=True,
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(message)s"
        ))
        _slow_query_logger.addHandler(handler)

    return _slow_query_logger


def _setup_slow_query_logging(engine):
    """为同步引擎设置慢查询监控"""
    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start_times = conn.info.get("query_start_time", [])
        if start_times:
            start_time = start_times.pop()
            duration_ms = (time.perf_counter() - start_time) * 1000

            if duration_ms >= SLOW_QUERY_THRESHOLD_MS:
                slow_logger = get_slow_query_logger()
                sql = statement[:2000] + "..." if len(statement) > 2000 else statement
                sql = sql.replace("\n", " ").replace("  ", " ")
                slow_logger.info(
                    f"duration={duration_ms:.1f}ms | sql={sql} | params={str(parameters)[:500]}"
                )


class DatabaseManager:
    """数据库管理器"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._async_engine: Optional[AsyncEngine] = None
        self._async_session_factory: Optional[async_sessionmaker] = None

    def create_async_engine(self) -> AsyncEngine:
        """创建异步数据库引擎"""
        if self._async_engine is None:
            url = self.settings.database_url
            engine_kwargs = {"echo": self.settings.db_echo}
            # sqlite 不支持连接池参数
            if not url.startswith("sqlite"):
                engine_kwargs.update(
                    pool_size=self.settings.db_pool_size,
                    max_overflow=self.settings.db_max_overflow,
                    pool_pre_ping=True,  # 连接前检查有效性
                    pool_recycle=3600,   # 1小时回收连接
                )
            self._async_engine = create_async_engine(url, **engine_kwargs)
            _setup_slow_query_logging(self._async_engine.sync_engine)
            logger.info("Created async database engine with slow query logging")

        return self._async_engine

    def get_async_session_factory(self) -> async_sessionmaker:
        """获取异步会话工厂"""
        if self._async_session_factory is None:
            engine = self.create_async_engine()
            self._async_session_factory = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,  # 手动控制刷新时机
            )

        return self._async_session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """获取数据库会话上下文管理器"""
        session_factory = self.get_async_session_factory()
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_tables(self) -> None:
        """创建所有表（仅用于测试）"""
        engine = self.create_async_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Created all database tables")

    async def drop_tables(self) -> None:
        """删除所有表（仅用于测试）"""
        engine = self.create_async_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Dropped all database tables")

    async def check_connection(self) -> bool:
        """检查数据库连接"""
        try:
            engine = self.create_async_engine()
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection check passed")
            return True
        except Exception:
            logger.error("Database connection check failed", exc_info=True)
            return False

    async def close(self) -> None:
        """关闭数据库连接"""
        if self._async_engine:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
            logger.info("Closed async database engine")


# 全局数据库管理器实例
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """获取数据库管理器单例"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


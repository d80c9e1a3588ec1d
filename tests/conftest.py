"""
Pytest 配置和 fixtures
"""
import itertools
from typing import AsyncGenerator, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from mb_core.config import Settings
from mb_core.database import DatabaseManager
import plugins.mb.channels.meta.models  # noqa: F401  注册模型到 Base.metadata
from plugins.mb.channels.meta.models import ProductCategory
from plugins.mb.channels.meta.services.sync.reconciliation_engine import ReconciliationEngine
from plugins.mb.channels.meta.services.sync.state_store import InMemorySyncStateStore
from plugins.mb.channels.meta.services.sync.sync_config import PRODUCT_SETS_DOMAIN, SyncConfiguration
from plugins.mb.channels.meta.services.sync.types import LocalEntity


class StaticEntityProvider:
    """固定实体列表的 LocalEntityProvider"""

    def __init__(self, entities: Optional[List[LocalEntity]] = None):
        self.entities: Dict[str, LocalEntity] = {e.id: e for e in entities or []}
        self.list_calls = 0

    async def list_entities(self) -> List[LocalEntity]:
        self.list_calls += 1
        return list(self.entities.values())

    async def get_by_id(self, entity_id: str) -> Optional[LocalEntity]:
        return self.entities.get(str(entity_id))


@pytest.fixture
def settings(tmp_path) -> Settings:
    """测试配置（不读取 .env）"""
    return Settings(
        _env_file=None,
        db_url_override=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        graph_access_token="test-token",
        graph_catalog_id="1234567890",
        graph_retry_max=2,
        graph_retry_backoff_base=0,
        graph_rate_limit=1000,
        store_base_url="https://shop.example.com",
    )


@pytest_asyncio.fixture
async def db_manager(settings) -> AsyncGenerator[DatabaseManager, None]:
    """数据库管理器 fixture（每个测试独立的 sqlite 文件）"""
    manager = DatabaseManager(settings)
    await manager.create_tables()

    yield manager

    await manager.drop_tables()
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager) -> AsyncGenerator[AsyncSession, None]:
    """数据库会话 fixture"""
    async with db_manager.get_session() as session:
        yield session


@pytest_asyncio.fixture
async def sample_categories(db_session) -> List[ProductCategory]:
    """示例商品分类"""
    categories = [
        ProductCategory(id=1, name="Shoes", slug="shoes", description="All kinds of shoes"),
        ProductCategory(id=2, name="Hats", slug="hats", description=""),
        ProductCategory(id=3, name="Bags", slug="bags", description=None, parent_id=1),
    ]
    db_session.add_all(categories)
    await db_session.commit()
    return categories


@pytest.fixture
def entities() -> List[LocalEntity]:
    """示例本地实体"""
    return [
        LocalEntity(id="1", display_name="Shoes"),
        LocalEntity(id="2", display_name="Hats"),
        LocalEntity(id="3", display_name="Bags"),
    ]


@pytest.fixture
def provider(entities) -> StaticEntityProvider:
    return StaticEntityProvider(entities)


@pytest.fixture
def store() -> InMemorySyncStateStore:
    return InMemorySyncStateStore(PRODUCT_SETS_DOMAIN)


@pytest.fixture
def remote_client() -> AsyncMock:
    """RemoteResourceClient 替身：create 依次返回 remote-1, remote-2, ..."""
    counter = itertools.count(1)

    async def create(payload):
        return f"remote-{next(counter)}"

    client = AsyncMock()
    client.create = AsyncMock(side_effect=create)
    client.update = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=None)
    return client


@pytest.fixture
def enabled_config() -> SyncConfiguration:
    return SyncConfiguration.enabled_for(PRODUCT_SETS_DOMAIN)


@pytest.fixture
def engine(enabled_config, remote_client, provider, store) -> ReconciliationEngine:
    return ReconciliationEngine(
        domain=PRODUCT_SETS_DOMAIN,
        config=enabled_config,
        client=remote_client,
        provider=provider,
        store=store,
    )

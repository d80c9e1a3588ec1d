"""
映射存储测试
"""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from plugins.mb.channels.meta.services.sync.state_store import InMemorySyncStateStore, SqlSyncStateStore
from plugins.mb.channels.meta.services.sync.sync_config import PRODUCT_SETS_DOMAIN
from plugins.mb.channels.meta.services.sync.types import ResourceMapping


@pytest_asyncio.fixture(params=["memory", "sql"])
async def make_store(request, db_manager):
    """同一组用例分别跑在两种存储实现上"""
    sessions = []

    async def factory(domain=PRODUCT_SETS_DOMAIN):
        if request.param == "memory":
            return InMemorySyncStateStore(domain)
        session = db_manager.get_async_session_factory()()
        sessions.append(session)
        return SqlSyncStateStore(session, domain)

    yield factory

    for session in sessions:
        await session.close()


class TestStateStore:

    @pytest.mark.asyncio
    async def test_get_absent(self, make_store):
        store = await make_store()

        assert await store.get("1") is None

    @pytest.mark.asyncio
    async def test_put_get_remove(self, make_store):
        store = await make_store()

        await store.put("1", "remote-1")
        assert await store.get("1") == "remote-1"

        await store.remove("1")
        assert await store.get("1") is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self, make_store):
        store = await make_store()

        await store.put("1", "remote-1")
        await store.put("1", "remote-2")

        assert await store.get("1") == "remote-2"
        assert len(await store.list_mappings()) == 1

    @pytest.mark.asyncio
    async def test_remove_absent_is_noop(self, make_store):
        store = await make_store()

        await store.remove("missing")

        assert await store.list_mappings() == []

    @pytest.mark.asyncio
    async def test_list_mappings_sorted(self, make_store):
        store = await make_store()
        await store.put("b", "remote-b")
        await store.put("a", "remote-a")

        assert await store.list_mappings() == [
            ResourceMapping(PRODUCT_SETS_DOMAIN, "a", "remote-a"),
            ResourceMapping(PRODUCT_SETS_DOMAIN, "b", "remote-b"),
        ]


class TestSqlStateStore:

    @pytest.mark.asyncio
    async def test_domains_are_isolated(self, db_session):
        sets_store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)
        feeds_store = SqlSyncStateStore(db_session, "product_feeds")

        await sets_store.put("1", "remote-set")
        await feeds_store.put("1", "remote-feed")

        assert await sets_store.get("1") == "remote-set"
        assert await feeds_store.get("1") == "remote-feed"
        assert len(await sets_store.list_mappings()) == 1

    @pytest.mark.asyncio
    async def test_mapping_is_committed(self, db_manager, db_session):
        await SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN).put("1", "remote-1")

        async with db_manager.get_session() as other_session:
            assert await SqlSyncStateStore(other_session, PRODUCT_SETS_DOMAIN).get("1") == "remote-1"

    @pytest.mark.asyncio
    async def test_duplicate_remote_id_is_rejected(self, db_session):
        store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)
        await store.put("1", "remote-1")

        with pytest.raises(IntegrityError):
            await store.put("2", "remote-1")

        assert await store.get("2") is None
        assert await store.get("1") == "remote-1"

    @pytest.mark.asyncio
    async def test_concurrent_writes_on_one_session(self, db_session):
        store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)

        await asyncio.gather(*(store.put(str(i), f"remote-{i}") for i in range(10)))
        await asyncio.gather(*(store.remove(str(i)) for i in range(0, 10, 2)))

        mappings = await store.list_mappings()
        assert sorted(m.local_id for m in mappings) == ["1", "3", "5", "7", "9"]

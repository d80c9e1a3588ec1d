"""
商品分类事件处理测试
"""
from unittest.mock import AsyncMock

import pytest

from mb_core.event_bus import EventBus
from plugins.mb.channels.meta.api.errors import TransientNetworkError
from plugins.mb.channels.meta.services.sync.event_handlers import (
    PRODUCT_CATEGORY_CREATED,
    PRODUCT_CATEGORY_DELETED,
    PRODUCT_CATEGORY_TOPICS,
    PRODUCT_CATEGORY_UPDATED,
    ProductSetEventHandler,
    register_product_set_event_handlers,
)
from plugins.mb.channels.meta.services.sync.types import OperationKind


@pytest.fixture
def handler(engine):
    return ProductSetEventHandler(engine)


class TestProductSetEventHandler:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("change_kind", ["created", "updated"])
    async def test_created_or_updated_reconciles(self, handler, remote_client, store, change_kind):
        operation = await handler.handle({"entity_id": "1", "change_kind": change_kind})

        assert operation.kind == OperationKind.CREATE
        assert await store.get("1") == "remote-1"

    @pytest.mark.asyncio
    async def test_unresolvable_entity_is_noop(self, handler, remote_client, store):
        result = await handler.handle({"entity_id": "404", "change_kind": "updated"})

        assert result is None
        assert remote_client.mock_calls == []
        assert await store.list_mappings() == []

    @pytest.mark.asyncio
    async def test_deleted_entity_uses_tombstone(self, handler, remote_client, store):
        await store.put("404", "remote-404")

        operation = await handler.handle({"entity_id": "404", "change_kind": "deleted"})

        assert operation.kind == OperationKind.DELETE
        assert operation.local_entity.display_name == ""
        remote_client.delete.assert_awaited_once_with("remote-404")
        assert await store.get("404") is None

    @pytest.mark.asyncio
    async def test_unknown_change_kind(self, handler):
        with pytest.raises(ValueError):
            await handler.handle({"entity_id": "1", "change_kind": "archived"})

    @pytest.mark.asyncio
    async def test_missing_entity_id(self, handler):
        with pytest.raises(ValueError):
            await handler.handle({"change_kind": "created"})

    @pytest.mark.asyncio
    async def test_remote_errors_propagate(self, handler, remote_client, store):
        remote_client.create.side_effect = TransientNetworkError("timeout")

        with pytest.raises(TransientNetworkError):
            await handler.handle({"entity_id": "1", "change_kind": "created"})

        assert await store.get("1") is None


class TestEventBusIntegration:

    @pytest.mark.asyncio
    async def test_register_subscribes_all_topics(self, handler, settings):
        bus = EventBus(settings, dispatch_local=True)

        await register_product_set_event_handlers(bus, handler.handle)

        assert set(bus.subscriptions) == set(PRODUCT_CATEGORY_TOPICS)

    @pytest.mark.asyncio
    async def test_lifecycle_through_local_bus(self, handler, remote_client, store, settings):
        bus = EventBus(settings, dispatch_local=True)
        await bus.initialize()
        await register_product_set_event_handlers(bus, handler.handle)

        await bus.publish(PRODUCT_CATEGORY_CREATED, {"entity_id": "1", "change_kind": "created"})
        await bus.publish(PRODUCT_CATEGORY_UPDATED, {"entity_id": "1", "change_kind": "updated"})
        await bus.publish(PRODUCT_CATEGORY_DELETED, {"entity_id": "1", "change_kind": "deleted"})
        await bus.shutdown()

        assert remote_client.create.await_count == 1
        assert remote_client.update.await_count == 1
        remote_client.delete.assert_awaited_once_with("remote-1")
        assert await store.get("1") is None

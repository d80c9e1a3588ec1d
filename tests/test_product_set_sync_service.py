"""
商品集同步服务测试（sqlite + respx）
"""
import asyncio
import json

import pytest
import respx
from httpx import Response

from plugins.mb.channels.meta.models import ProductCategory
from plugins.mb.channels.meta.services.sync.exceptions import SyncAbortedError
from plugins.mb.channels.meta.services.sync.product_set_sync import product_set_sync_service
from plugins.mb.channels.meta.services.sync.product_set_sync.product_set_sync_service import (
    ProductSetSyncService,
    cleanup_orphaned_product_sets,
    sync_all_product_sets,
)
from plugins.mb.channels.meta.services.sync.state_store import SqlSyncStateStore
from plugins.mb.channels.meta.services.sync.sync_config import PRODUCT_SETS_DOMAIN


def create_responder(request):
    payload = json.loads(request.content)
    return Response(200, json={"id": f"ps-{payload['retailer_id']}"})


async def slow_create_responder(request):
    await asyncio.sleep(0.01)
    return create_responder(request)


@pytest.fixture
def patched_globals(monkeypatch, settings, db_manager):
    monkeypatch.setattr(product_set_sync_service, "get_settings", lambda: settings)
    monkeypatch.setattr(product_set_sync_service, "get_db_manager", lambda: db_manager)


class TestProductSetSyncService:

    @pytest.mark.asyncio
    async def test_sync_all_creates_product_sets(self, settings, db_session, sample_categories):
        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            route = respx_mock.post(f"/{settings.graph_catalog_id}/product_sets").mock(side_effect=create_responder)

            report = await ProductSetSyncService(db_session, settings).sync_all()

        assert report.created == 3
        assert route.call_count == 3
        correlation_ids = {call.request.headers["X-Correlation-Id"] for call in route.calls}
        assert len(correlation_ids) == 1
        first = json.loads(route.calls[0].request.content)
        assert first["name"] == "Shoes"
        assert json.loads(first["metadata"])["external_url"] == "https://shop.example.com/?product_cat=shoes"

        store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)
        assert [m.remote_id for m in await store.list_mappings()] == ["ps-1", "ps-2", "ps-3"]

    @pytest.mark.asyncio
    async def test_second_pass_updates(self, settings, db_session, sample_categories):
        store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)
        for category in sample_categories:
            await store.put(str(category.id), f"ps-{category.id}")

        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            for category in sample_categories:
                respx_mock.post(f"/ps-{category.id}").mock(return_value=Response(200, json={"success": True}))

            report = await ProductSetSyncService(db_session, settings).sync_all()

        assert report.updated == 3
        assert report.created == 0

    @pytest.mark.asyncio
    async def test_not_connected_is_disabled(self, settings, db_session, sample_categories):
        settings.graph_access_token = None

        report = await ProductSetSyncService(db_session, settings).sync_all()

        assert report.skipped_disabled

    @pytest.mark.asyncio
    async def test_concurrent_sync_all_records_every_create(self, settings, db_session):
        db_session.add_all([
            ProductCategory(id=i, name=f"Category {i}", slug=f"category-{i}") for i in range(1, 9)
        ])
        await db_session.commit()
        settings.sync_all_concurrency = 4

        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            route = respx_mock.post(f"/{settings.graph_catalog_id}/product_sets").mock(
                side_effect=slow_create_responder
            )

            report = await ProductSetSyncService(db_session, settings).sync_all()

        assert report.failed == 0
        assert report.created == 8
        assert route.call_count == 8
        mappings = await SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN).list_mappings()
        assert sorted(m.remote_id for m in mappings) == sorted(f"ps-{i}" for i in range(1, 9))

        with respx.mock(base_url=settings.graph_api_url, assert_all_called=False) as respx_mock:
            create_route = respx_mock.post(f"/{settings.graph_catalog_id}/product_sets")
            for i in range(1, 9):
                respx_mock.post(f"/ps-{i}").mock(return_value=Response(200, json={"success": True}))

            second = await ProductSetSyncService(db_session, settings).sync_all()

        assert second.updated == 8
        assert not create_route.called

    @pytest.mark.asyncio
    async def test_expired_token_aborts(self, settings, db_session, sample_categories):
        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            route = respx_mock.post(f"/{settings.graph_catalog_id}/product_sets").mock(
                return_value=Response(400, json={"error": {"message": "Session has expired", "code": 190}})
            )

            with pytest.raises(SyncAbortedError) as exc_info:
                await ProductSetSyncService(db_session, settings).sync_all()

        assert route.call_count == 1
        assert exc_info.value.report.aborted
        assert exc_info.value.to_dict()["error"]["code"] == "SYNC_ABORTED"

    @pytest.mark.asyncio
    async def test_handle_deleted_event(self, settings, db_session):
        await SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN).put("77", "ps-77")

        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            route = respx_mock.delete("/ps-77").mock(return_value=Response(200, json={"success": True}))

            await ProductSetSyncService(db_session, settings).handle_event({"entity_id": "77", "change_kind": "deleted"})

        assert route.calls.last.request.url.params["allow_live_product_set_deletion"] == "true"
        assert await SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN).get("77") is None


class TestServiceHandlers:

    @pytest.mark.asyncio
    async def test_sync_all_handler(self, settings, sample_categories, patched_globals):
        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            respx_mock.post(f"/{settings.graph_catalog_id}/product_sets").mock(side_effect=create_responder)

            result = await sync_all_product_sets({})

        assert result["records_processed"] == 3
        assert result["records_updated"] == 3
        assert "created=3" in result["message"]

    @pytest.mark.asyncio
    async def test_orphan_cleanup_handler(self, settings, db_session, sample_categories, patched_globals):
        store = SqlSyncStateStore(db_session, PRODUCT_SETS_DOMAIN)
        await store.put("1", "ps-1")
        await store.put("999", "ps-999")

        with respx.mock(base_url=settings.graph_api_url) as respx_mock:
            route = respx_mock.delete("/ps-999").mock(return_value=Response(200, json={"success": True}))

            result = await cleanup_orphaned_product_sets({"batch_size": 10})

        assert route.call_count == 1
        assert result["records_processed"] == 2
        assert result["records_updated"] == 1

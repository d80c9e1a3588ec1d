"""
应用生命周期测试
"""
import pytest

from mb_core import app
from mb_core.event_bus import EventBus
from plugins.mb.channels.meta.services.sync.product_set_sync import product_set_sync_service


@pytest.fixture
def patched_app(monkeypatch, settings, db_manager):
    monkeypatch.setattr(app, "get_settings", lambda: settings)
    monkeypatch.setattr(app, "get_db_manager", lambda: db_manager)
    monkeypatch.setattr(product_set_sync_service, "get_settings", lambda: settings)
    monkeypatch.setattr(product_set_sync_service, "get_db_manager", lambda: db_manager)


@pytest.mark.asyncio
async def test_lifespan_wires_plugins(settings, patched_app):
    async with app.lifespan(EventBus(settings, dispatch_local=True)) as bus:
        assert "mb.catalog.product_category.created" in bus.subscriptions


@pytest.mark.asyncio
async def test_run_service_once(settings, sample_categories, patched_app, monkeypatch):
    monkeypatch.setattr(app, "EventBus", lambda dispatch_local: EventBus(settings, dispatch_local=dispatch_local))

    result = await app.run_service("meta_product_sets_orphan_cleanup")

    assert result["records_processed"] == 0
    assert "checked=0" in result["message"]

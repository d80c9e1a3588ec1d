"""
孤立映射清理测试
"""
import pytest

from plugins.mb.channels.meta.api.errors import AuthError, TransientNetworkError
from plugins.mb.channels.meta.services.sync.orphan_cleanup import OrphanedMappingCleanup
from plugins.mb.channels.meta.services.sync.reconciliation_engine import ReconciliationEngine
from plugins.mb.channels.meta.services.sync.sync_config import PRODUCT_SETS_DOMAIN, SyncConfiguration


@pytest.mark.asyncio
async def test_deletes_only_orphans(engine, remote_client, store):
    await store.put("1", "remote-1")
    await store.put("gone-a", "remote-a")
    await store.put("gone-b", "remote-b")

    result = await OrphanedMappingCleanup(engine).run(batch_size=2)

    assert result.checked == 3
    assert result.deleted == 2
    assert result.failed == 0
    assert sorted(c.args[0] for c in remote_client.delete.await_args_list) == ["remote-a", "remote-b"]
    assert [m.local_id for m in await store.list_mappings()] == ["1"]


@pytest.mark.asyncio
async def test_failures_are_counted_and_mapping_kept(engine, remote_client, store):
    await store.put("gone-a", "remote-a")
    await store.put("gone-b", "remote-b")
    remote_client.delete.side_effect = [TransientNetworkError("timeout"), None]

    result = await OrphanedMappingCleanup(engine).run()

    assert result.deleted == 1
    assert result.failed_ids == ["gone-a"]
    assert await store.get("gone-a") == "remote-a"
    assert result.to_dict()["records_updated"] == 1


@pytest.mark.asyncio
async def test_auth_error_propagates(engine, remote_client, store):
    await store.put("gone-a", "remote-a")
    remote_client.delete.side_effect = AuthError("(#190) token expired")

    with pytest.raises(AuthError):
        await OrphanedMappingCleanup(engine).run()


@pytest.mark.asyncio
async def test_disabled_sync_skips(remote_client, provider, store):
    await store.put("gone-a", "remote-a")
    engine = ReconciliationEngine(
        domain=PRODUCT_SETS_DOMAIN,
        config=SyncConfiguration.disabled(),
        client=remote_client,
        provider=provider,
        store=store,
    )

    result = await OrphanedMappingCleanup(engine).run()

    assert result.skipped_disabled
    assert remote_client.mock_calls == []
    assert await store.get("gone-a") == "remote-a"

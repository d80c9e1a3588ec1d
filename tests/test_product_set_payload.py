"""
商品集负载构建测试
"""
import json

from plugins.mb.channels.meta.services.sync.payload import build_product_set_payload, product_type_filter
from plugins.mb.channels.meta.services.sync.types import LocalEntity


def test_filter_is_compact_json():
    payload = build_product_set_payload(LocalEntity(id="42", display_name="Test Category 1"))

    assert payload["filter"] == '{"and":[{"product_type":{"i_contains":"Test Category 1"}}]}'


def test_metadata_omitted_when_empty():
    payload = build_product_set_payload(LocalEntity(id="42", display_name="Hats", metadata={"description": ""}))

    assert set(payload) == {"name", "retailer_id", "filter"}


def test_metadata_is_json_string():
    entity = LocalEntity(
        id="42",
        display_name="Test Category 1",
        metadata={"description": "d", "external_url": "u"},
    )

    payload = build_product_set_payload(entity)

    assert isinstance(payload["metadata"], str)
    assert json.loads(payload["metadata"]) == {"description": "d", "external_url": "u"}


def test_entity_filter_criteria_wins():
    criteria = {"and": [{"retailer_id": {"is_any": ["a", "b"]}}]}
    payload = build_product_set_payload(LocalEntity(id="1", display_name="X", filter_criteria=criteria))

    assert json.loads(payload["filter"]) == criteria


def test_product_type_filter():
    assert product_type_filter("Bags") == {"and": [{"product_type": {"i_contains": "Bags"}}]}

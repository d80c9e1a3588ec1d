"""
商品集远程负载构建

负载为扁平 JSON 对象：
    name         显示名称
    retailer_id  本地实体ID（原样复用，映射丢失时仍可在远程识别）
    filter       JSON 字符串，布尔表达式树
    metadata     JSON 字符串（为空时省略）
"""
import json
from typing import Any, Dict

from .types import LocalEntity


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def product_type_filter(display_name: str) -> Dict[str, Any]:
    """按商品类型不区分大小写包含分类名称"""
    return {"and": [{"product_type": {"i_contains": display_name}}]}


def build_product_set_payload(entity: LocalEntity) -> Dict[str, str]:
    """根据本地实体构建商品集负载（纯函数）"""
    criteria = entity.filter_criteria or product_type_filter(entity.display_name)
    payload = {
        "name": entity.display_name,
        "retailer_id": str(entity.id),
        "filter": _dumps(criteria),
    }

    metadata = {k: v for k, v in (entity.metadata or {}).items() if v not in (None, "")}
    if metadata:
        payload["metadata"] = _dumps(metadata)

    return payload

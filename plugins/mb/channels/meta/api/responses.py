"""
Graph API 响应结构

合同约定的字段以具名属性暴露，其余字段原样保留在 raw 中。
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

# 限流相关响应头（大小写不敏感）
BUSINESS_USE_CASE_USAGE_HEADER = "x-business-use-case-usage"
APP_USAGE_HEADER = "x-app-usage"


@dataclass(frozen=True)
class GraphError:
    """Graph API 错误对象"""
    message: Optional[str] = None
    type: Optional[str] = None
    code: Optional[int] = None
    error_subcode: Optional[int] = None
    user_message: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphError":
        return cls(
            message=data.get("message"),
            type=data.get("type"),
            code=_as_int(data.get("code")),
            error_subcode=_as_int(data.get("error_subcode")),
            user_message=data.get("error_user_msg"),
            raw=dict(data),
        )


@dataclass(frozen=True)
class GraphResponse:
    """Graph API 通用响应"""
    id: Optional[str] = None
    error: Optional[GraphError] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GraphResponse":
        data = dict(data or {})
        return cls(**cls._parse_fields(data), raw=data)

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        error = data.get("error")
        resource_id = data.get("id")
        return {
            "id": str(resource_id) if resource_id is not None else None,
            "error": GraphError.from_dict(error) if isinstance(error, dict) else None,
        }

    @property
    def has_api_error(self) -> bool:
        return self.error is not None

    def get(self, key: str, default: Any = None) -> Any:
        """读取 raw 中的任意字段"""
        return self.raw.get(key, default)

    def to_string(self) -> str:
        return json.dumps(self.raw, ensure_ascii=False)


@dataclass(frozen=True)
class ProductSetResponse(GraphResponse):
    """商品集创建/读取响应"""
    name: Optional[str] = None
    filter: Optional[str] = None
    retailer_id: Optional[str] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._parse_fields(data)
        fields.update(
            name=data.get("name"),
            filter=data.get("filter"),
            retailer_id=data.get("retailer_id"),
        )
        return fields


@dataclass(frozen=True)
class ProductSetUpdateResponse(GraphResponse):
    """商品集更新响应"""
    # 只有布尔 True 视为成功；"true"/1 等不做宽松转换
    success: Optional[bool] = None
    partial_success: bool = False
    updated_fields: List[str] = field(default_factory=list)
    failed_fields: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._parse_fields(data)
        success = data.get("success")
        fields.update(
            success=success if isinstance(success, bool) else None,
            partial_success=data.get("partial_success") is True,
            updated_fields=list(data.get("updated_fields") or []),
            failed_fields=list(data.get("failed_fields") or []),
            errors=[str(e) for e in data.get("errors") or []],
        )
        return fields

    @property
    def is_partial(self) -> bool:
        return self.partial_success or bool(self.failed_fields)


@dataclass(frozen=True)
class ProductSetDeleteResponse(GraphResponse):
    """商品集删除响应"""
    success: Optional[bool] = None

    @classmethod
    def _parse_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._parse_fields(data)
        success = data.get("success")
        fields["success"] = success if isinstance(success, bool) else None
        return fields


@dataclass(frozen=True)
class RateLimitUsage:
    """限流使用情况（百分比 / 秒）"""
    call_count: int = 0
    total_time: int = 0
    total_cputime: int = 0
    estimated_time_to_regain_access: Optional[int] = None

    @property
    def is_throttled(self) -> bool:
        return bool(self.estimated_time_to_regain_access)


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_usage_data(headers: Mapping[str, str]) -> Dict[str, Any]:
    """
    从响应头中提取限流使用数据

    X-Business-Use-Case-Usage 形如 {"<business_id>": [{"call_count": 85, ...}]}，
    X-App-Usage 形如 {"call_count": 85, ...}。两者都不存在时返回空字典。
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    raw = lowered.get(BUSINESS_USE_CASE_USAGE_HEADER)
    if raw:
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            for entries in decoded.values():
                if isinstance(entries, list) and entries and isinstance(entries[0], dict):
                    return entries[0]

    raw = lowered.get(APP_USAGE_HEADER)
    if raw:
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded

    return {}


def parse_usage_headers(headers: Mapping[str, str]) -> RateLimitUsage:
    """解析限流使用情况"""
    data = get_usage_data(headers)
    regain = _as_int(data.get("estimated_time_to_regain_access"))
    return RateLimitUsage(
        call_count=_as_int(data.get("call_count")) or 0,
        total_time=_as_int(data.get("total_time")) or 0,
        total_cputime=_as_int(data.get("total_cputime")) or 0,
        # 0 表示未被限流
        estimated_time_to_regain_access=regain or None,
    )

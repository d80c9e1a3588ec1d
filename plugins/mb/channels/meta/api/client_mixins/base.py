"""
Graph API 客户端基础类
包含初始化、连接管理、核心请求方法（限流、重试、错误分类）
"""

import asyncio
import json
import time
import uuid
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

import httpx

from mb_core.config import Settings
from mb_core.utils.external_api_timing import log_external_api_timing
from mb_core.utils.logger import get_logger, trace_id_var

from ..errors import (
    AmbiguousResponseError,
    AuthError,
    RemoteResourceError,
    RemoteValidationError,
    RequestLimitReachedError,
    TransientNetworkError,
)
from ..rate_limiter import RateLimiter
from ..responses import GraphError, RateLimitUsage, parse_usage_headers
from ...utils.datetime_utils import utcnow

logger = get_logger(__name__)

# Graph 限流错误码
THROTTLE_ERROR_CODES = frozenset({4, 17, 32, 613, 80004})
# Graph 凭证/权限错误码（另含 200-299 权限段）
AUTH_ERROR_CODES = frozenset({10, 102, 190})
# Graph 未知/临时服务错误码
TRANSIENT_ERROR_CODES = frozenset({1, 2})


def truncate_for_log(obj: Any, max_len: int = 5000) -> Optional[str]:
    """截断对象用于日志记录"""
    if obj is None:
        return None
    try:
        s = json.dumps(obj, ensure_ascii=False)
    except (TypeError, ValueError):
        s = str(obj)
    if len(s) > max_len:
        return s[:max_len] + f"... [truncated, total {len(s)} chars]"
    return s


def classify_error(
    status_code: int,
    body: Optional[Dict[str, Any]],
    headers: Optional[Mapping[str, str]] = None,
) -> RemoteResourceError:
    """
    将 Graph API 错误响应映射为远程资源错误

    Args:
        status_code: HTTP 状态码
        body: 解析后的 JSON 响应（可能为 None）
        headers: 响应头（用于解析限流窗口）

    Returns:
        对应的异常实例（由调用方抛出）
    """
    error_data = body.get("error") if isinstance(body, dict) else None
    graph_error = GraphError.from_dict(error_data) if isinstance(error_data, dict) else None
    code = graph_error.code if graph_error else None
    message = (graph_error.message if graph_error else None) or f"HTTP {status_code}"

    if status_code == 429 or code in THROTTLE_ERROR_CODES:
        usage = parse_usage_headers(headers or {})
        throttle_end = None
        if usage.estimated_time_to_regain_access:
            # estimated_time_to_regain_access 单位为分钟
            throttle_end = utcnow() + timedelta(minutes=usage.estimated_time_to_regain_access)
        return RequestLimitReachedError(message, throttle_end=throttle_end, graph_error=graph_error)

    if status_code == 401 or code in AUTH_ERROR_CODES or (code is not None and 200 <= code <= 299):
        return AuthError(message, graph_error=graph_error)

    is_transient = bool(graph_error and graph_error.raw.get("is_transient"))
    if status_code >= 500 or code in TRANSIENT_ERROR_CODES or is_transient:
        return TransientNetworkError(message, graph_error=graph_error)

    if status_code == 403:
        return AuthError(message, graph_error=graph_error)

    return RemoteValidationError(message, graph_error=graph_error)


class GraphAPIClientBase:
    """Graph API 客户端基础类"""

    DEFAULT_BASE_URL = "https://graph.facebook.com/v21.0"

    def __init__(
        self,
        access_token: str,
        catalog_id: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        retry_max: int = 3,
        retry_backoff_base: float = 1.0,
        rate_limit: float = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化 Graph API 客户端

        Args:
            access_token: Graph 访问令牌
            catalog_id: 商品目录ID
            base_url: 带版本号的 API 根地址
            timeout: 单次请求超时（秒）
            retry_max: 临时错误最大重试次数
            retry_backoff_base: 指数退避基数（秒）
            rate_limit: 每秒请求数
            transport: 自定义 httpx 传输层
        """
        self.catalog_id = catalog_id
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.retry_max = retry_max
        self.retry_backoff_base = retry_backoff_base

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

        self.rate_limiter = RateLimiter(
            rate_limit={
                "product_sets": rate_limit,
                "default": rate_limit,
            }
        )

        # 最近一次响应的限流使用情况
        self.last_usage = RateLimitUsage()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs):
        """根据全局配置创建客户端"""
        if not settings.is_graph_connected:
            raise AuthError("Graph access token or catalog id is not configured")
        return cls(
            access_token=settings.graph_access_token,
            catalog_id=settings.graph_catalog_id,
            base_url=settings.graph_api_url,
            timeout=settings.graph_timeout,
            retry_max=settings.graph_retry_max,
            retry_backoff_base=settings.graph_retry_backoff_base,
            rate_limit=settings.graph_rate_limit,
            **kwargs,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """关闭客户端连接"""
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        resource_type: str = "default",
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        发送 API 请求（带重试和限流）

        临时错误按指数退避重试，同一逻辑请求的重试复用 idempotency_key；
        限流错误不在进程内重试，直接抛给调用方。

        Returns:
            API 响应数据
        """
        attempt = 0
        while True:
            try:
                return await self._send_once(
                    method, endpoint, data=data, params=params,
                    resource_type=resource_type, idempotency_key=idempotency_key,
                )
            except RequestLimitReachedError:
                raise
            except TransientNetworkError as e:
                if attempt >= self.retry_max:
                    raise
                delay = self.retry_backoff_base * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Graph API transient error, retrying",
                    method=method,
                    endpoint=endpoint,
                    attempt=attempt,
                    retry_max=self.retry_max,
                    delay_s=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

    async def _send_once(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        resource_type: str = "default",
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """发送单次请求并将失败映射为远程资源错误"""
        await self.rate_limiter.acquire(resource_type)

        request_id = str(uuid.uuid4())
        headers = {"X-Request-Id": request_id}
        # 同步批次的 trace_id 作为关联ID透传
        correlation_id = trace_id_var.get()
        if correlation_id:
            headers["X-Correlation-Id"] = correlation_id
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        logger.info(
            "Graph API request",
            direction="outbound",
            method=method,
            endpoint=endpoint,
            catalog_id=self.catalog_id,
            request_id=request_id,
            request_body=truncate_for_log(data),
            query_params=truncate_for_log(params) if params else None,
        )

        api_start = time.perf_counter()
        try:
            response = await self.client.request(method=method, url=endpoint, json=data, params=params, headers=headers)
        except httpx.TimeoutException as e:
            self._log_failure(method, endpoint, api_start, request_id, e)
            raise TransientNetworkError(f"Request timed out: {method} {endpoint}") from e
        except httpx.TransportError as e:
            self._log_failure(method, endpoint, api_start, request_id, e)
            raise TransientNetworkError(f"Transport error: {type(e).__name__}: {e}") from e

        api_elapsed_ms = (time.perf_counter() - api_start) * 1000
        self.last_usage = parse_usage_headers(response.headers)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400 or (isinstance(body, dict) and "error" in body):
            logger.error(
                "Graph API error response",
                direction="outbound",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                latency_ms=int(api_elapsed_ms),
                catalog_id=self.catalog_id,
                request_id=request_id,
                response_body=truncate_for_log(body) if body is not None else response.text[:5000],
                result="error",
            )
            log_external_api_timing(
                "GRAPH", method, endpoint, api_elapsed_ms,
                f"catalog={self.catalog_id} | ERROR={response.status_code}"
            )
            raise classify_error(response.status_code, body, response.headers)

        if not isinstance(body, dict):
            log_external_api_timing(
                "GRAPH", method, endpoint, api_elapsed_ms,
                f"catalog={self.catalog_id} | NON_JSON"
            )
            raise AmbiguousResponseError(
                f"Graph API returned a non-JSON body for {method} {endpoint}"
            )

        logger.info(
            "Graph API response",
            direction="outbound",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            latency_ms=int(api_elapsed_ms),
            catalog_id=self.catalog_id,
            request_id=request_id,
            response_body=truncate_for_log(body),
            call_count=self.last_usage.call_count,
            result="success",
        )
        log_external_api_timing(
            "GRAPH", method, endpoint, api_elapsed_ms,
            f"catalog={self.catalog_id}"
        )
        return body

    def _log_failure(self, method: str, endpoint: str, api_start: float, request_id: str, error: Exception) -> None:
        api_elapsed_ms = (time.perf_counter() - api_start) * 1000
        logger.error(
            "Graph API request failed",
            direction="outbound",
            method=method,
            endpoint=endpoint,
            latency_ms=int(api_elapsed_ms),
            catalog_id=self.catalog_id,
            request_id=request_id,
            error=str(error),
            error_type=type(error).__name__,
            result="error",
        )
        log_external_api_timing(
            "GRAPH", method, endpoint, api_elapsed_ms,
            f"catalog={self.catalog_id} | EXCEPTION={type(error).__name__}"
        )

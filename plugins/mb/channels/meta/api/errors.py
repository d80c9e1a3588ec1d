"""
Graph API 远程资源错误分类

同步引擎只依赖这里定义的异常类型：
- TransientNetworkError: 网络/超时/5xx，可重试
- RequestLimitReachedError: 触发限流，需等待 throttle_end 之后重试
- RemoteValidationError: 负载被拒绝，原样重试无效
- PartialUpdateError: 更新时部分字段被拒绝
- AuthError: 凭证无效或权限不足，属于系统性错误
- AmbiguousResponseError: 2xx 响应但无法确认操作已生效
"""
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from mb_core.utils.errors import MetaBridgeException

if TYPE_CHECKING:
    from .responses import GraphError


class RemoteResourceError(MetaBridgeException):
    """远程资源操作失败的基类"""

    status = 502
    code = "GRAPH_ERROR"
    title = "Remote Resource Error"
    retryable = False

    def __init__(self, detail: str, graph_error: Optional["GraphError"] = None, **kwargs):
        super().__init__(
            status=type(self).status,
            code=type(self).code,
            title=type(self).title,
            detail=detail,
            **kwargs
        )
        self.graph_error = graph_error


class TransientNetworkError(RemoteResourceError):
    """临时性网络错误（调用方可重试）"""

    status = 503
    code = "GRAPH_TRANSIENT_ERROR"
    title = "Service Unavailable"
    retryable = True


class RequestLimitReachedError(TransientNetworkError):
    """Graph API 限流"""

    status = 429
    code = "GRAPH_REQUEST_LIMIT_REACHED"
    title = "Too Many Requests"

    def __init__(self, detail: str, throttle_end: Optional[datetime] = None, **kwargs):
        super().__init__(detail, **kwargs)
        self.throttle_end = throttle_end


class RemoteValidationError(RemoteResourceError):
    """负载被远程拒绝（不修改负载重试无效）"""

    status = 422
    code = "GRAPH_VALIDATION_ERROR"
    title = "Validation Failed"


class PartialUpdateError(RemoteValidationError):
    """更新请求部分字段失败"""

    code = "GRAPH_PARTIAL_UPDATE"

    def __init__(
        self,
        detail: str,
        updated_fields: Optional[List[str]] = None,
        failed_fields: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(detail, **kwargs)
        self.updated_fields = list(updated_fields or [])
        self.failed_fields = list(failed_fields or [])


class AuthError(RemoteResourceError):
    """凭证无效/过期或权限不足"""

    status = 401
    code = "GRAPH_AUTH_ERROR"
    title = "Unauthorized"


class AmbiguousResponseError(RemoteResourceError):
    """响应成功但内容无法确认操作结果"""

    code = "GRAPH_AMBIGUOUS_RESPONSE"
    title = "Bad Gateway"

"""
MetaBridge 错误处理系统
错误详情遵循 RFC7807 Problem Details 结构
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC7807 Problem Details 模型"""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "type": "about:blank",
                "title": "Remote validation failed",
                "status": 422,
                "detail": "(#100) Param filter must be a valid JSON object",
                "code": "GRAPH_VALIDATION_ERROR"
            }
        },
    )

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    code: Optional[str] = None  # 业务错误码


class MetaBridgeException(Exception):
    """MetaBridge 基础异常类"""

    def __init__(
        self,
        status: int,
        code: str,
        title: str,
        detail: Optional[str] = None,
        **kwargs
    ):
        self.status = status
        self.code = code
        self.title = title
        self.detail = detail
        self.extra = kwargs
        super().__init__(detail or title)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        """转换为 Problem Details 格式"""
        return ProblemDetail(
            type="about:blank",
            title=self.title,
            status=self.status,
            detail=self.detail,
            instance=instance,
            code=self.code,
            **self.extra
        )

    def to_dict(self, instance: Optional[str] = None) -> Dict[str, Any]:
        """转换为可序列化的错误字典（供管理界面展示同步错误）"""
        return {
            "ok": False,
            "error": self.to_problem_detail(instance).model_dump(exclude_none=True)
        }


class NotFoundError(MetaBridgeException):
    """404 未找到"""
    def __init__(self, code: str, resource: str):
        super().__init__(
            status=404,
            code=code,
            title="Not Found",
            detail=f"{resource} not found"
        )


"""
商品集远程客户端

在 MetaGraphAPIClient 之上实现 RemoteResourceClient 协议，
负责确认响应确实表明操作成功，否则抛出 AmbiguousResponseError / PartialUpdateError。
"""

import uuid
from typing import Any, Dict

from mb_core.utils.logger import get_logger

from ....api.client import MetaGraphAPIClient
from ....api.errors import AmbiguousResponseError, PartialUpdateError
from ....api.responses import ProductSetDeleteResponse, ProductSetUpdateResponse

logger = get_logger(__name__)


class GraphProductSetClient:
    """商品集 RemoteResourceClient 实现"""

    def __init__(self, api_client: MetaGraphAPIClient, allow_live_deletion: bool = True):
        self.api_client = api_client
        self.allow_live_deletion = allow_live_deletion

    async def create(self, payload: Dict[str, Any]) -> str:
        # 同一次逻辑创建的所有重试共用一个幂等键
        idempotency_key = str(uuid.uuid4())
        response = await self.api_client.create_product_set(payload, idempotency_key=idempotency_key)

        if not response.id:
            raise AmbiguousResponseError(
                "Product set create response has no id",
                response=response.to_string(),
            )

        logger.debug("Product set created", remote_id=response.id, idempotency_key=idempotency_key)
        return response.id

    async def update(self, remote_id: str, payload: Dict[str, Any]) -> ProductSetUpdateResponse:
        response = await self.api_client.update_product_set(remote_id, payload)

        if response.is_partial:
            raise PartialUpdateError(
                f"Product set {remote_id} partially updated",
                updated_fields=response.updated_fields,
                failed_fields=response.failed_fields,
            )
        if response.success is not True:
            raise AmbiguousResponseError(
                f"Product set {remote_id} update was not confirmed",
                response=response.to_string(),
            )
        return response

    async def delete(self, remote_id: str) -> ProductSetDeleteResponse:
        response = await self.api_client.delete_product_set(
            remote_id, allow_live_deletion=self.allow_live_deletion
        )

        if response.success is not True:
            raise AmbiguousResponseError(
                f"Product set {remote_id} delete was not confirmed",
                response=response.to_string(),
            )
        return response

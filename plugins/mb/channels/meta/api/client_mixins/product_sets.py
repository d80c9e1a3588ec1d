"""
Graph API 商品集（product set）相关方法
"""

from typing import Any, Dict, Optional

from ..responses import ProductSetDeleteResponse, ProductSetResponse, ProductSetUpdateResponse


class ProductSetsMixin:
    """商品集相关 API 方法"""

    async def create_product_set(
        self, payload: Dict[str, Any], idempotency_key: Optional[str] = None
    ) -> ProductSetResponse:
        """
        在商品目录下创建商品集

        Args:
            payload: 请求体（name, retailer_id, filter, metadata）
            idempotency_key: 幂等键，重试时复用

        Returns:
            创建响应，包含新商品集的 id
        """
        data = await self._request(
            "POST",
            f"/{self.catalog_id}/product_sets",
            data=payload,
            resource_type="product_sets",
            idempotency_key=idempotency_key,
        )
        return ProductSetResponse.from_dict(data)

    async def update_product_set(self, product_set_id: str, payload: Dict[str, Any]) -> ProductSetUpdateResponse:
        """
        更新商品集

        Args:
            product_set_id: 商品集ID
            payload: 请求体
        """
        data = await self._request(
            "POST", f"/{product_set_id}", data=payload, resource_type="product_sets"
        )
        return ProductSetUpdateResponse.from_dict(data)

    async def delete_product_set(
        self, product_set_id: str, allow_live_deletion: bool = False
    ) -> ProductSetDeleteResponse:
        """
        删除商品集

        Args:
            product_set_id: 商品集ID
            allow_live_deletion: 是否允许删除正在投放中的商品集
        """
        params = {"allow_live_product_set_deletion": "true"} if allow_live_deletion else None
        data = await self._request(
            "DELETE", f"/{product_set_id}", params=params, resource_type="product_sets"
        )
        return ProductSetDeleteResponse.from_dict(data)

    async def get_product_set(
        self, product_set_id: str, fields: str = "id,name,filter,retailer_id"
    ) -> ProductSetResponse:
        """读取商品集"""
        data = await self._request(
            "GET", f"/{product_set_id}", params={"fields": fields}, resource_type="product_sets"
        )
        return ProductSetResponse.from_dict(data)

"""
Meta Graph API 客户端
处理与 Graph 商品目录 API 的所有交互

采用 Mixin 模式组织代码，各功能模块在 client_mixins/ 目录下：
- base.py: 基础配置、连接管理、核心请求方法
- product_sets.py: 商品集相关 API
"""

from .client_mixins import GraphAPIClientBase, ProductSetsMixin


class MetaGraphAPIClient(GraphAPIClientBase, ProductSetsMixin):
    """
    Meta Graph API 客户端

    使用方式:
        async with MetaGraphAPIClient.from_settings(get_settings()) as client:
            response = await client.create_product_set(payload)
    """

    pass

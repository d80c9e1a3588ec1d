"""
服务Handler全局注册表

管理各插件注册的后台同步服务Handler（全量对账、孤立映射清理等）

Handler 签名: async def handler(config: Dict[str, Any]) -> Dict[str, Any]
返回值至少包含 records_processed / records_updated / message
"""
import logging
import time
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ServiceHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

REQUIRED_RESULT_KEYS = ("records_processed", "records_updated", "message")


class ServiceHandlerRegistry:
    """服务Handler全局注册表（线程安全）"""

    def __init__(self):
        self._handlers: Dict[str, ServiceHandler] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()

    def register(
        self,
        service_key: str,
        handler: ServiceHandler,
        name: str,
        description: str,
        plugin: str,
        config_schema: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        注册服务Handler

        Args:
            service_key: 服务唯一标识（建议格式：{plugin}_{service}）
            handler: 异步处理函数
            name: 服务显示名称
            description: 服务功能说明
            plugin: 所属插件标识
            config_schema: 配置参数Schema，default 字段作为执行时的默认配置
        """
        with self._lock:
            if service_key in self._handlers:
                logger.warning(f"Service handler already registered: {service_key}, overwriting")

            self._handlers[service_key] = handler
            self._metadata[service_key] = {
                "service_key": service_key,
                "name": name,
                "description": description,
                "plugin": plugin,
                "config_schema": config_schema or {}
            }

        logger.info(f"Registered service handler: {service_key} (plugin={plugin})")

    def unregister(self, service_key: str) -> None:
        with self._lock:
            if service_key in self._handlers:
                del self._handlers[service_key]
                del self._metadata[service_key]
                logger.info(f"Unregistered service handler: {service_key}")
            else:
                logger.warning(f"Service handler not found: {service_key}")

    def get_handler(self, service_key: str) -> Optional[ServiceHandler]:
        return self._handlers.get(service_key)

    def get_metadata(self, service_key: str) -> Optional[Dict[str, Any]]:
        return self._metadata.get(service_key)

    def list_handlers(self) -> List[Dict[str, Any]]:
        """列出所有已注册的Handler（按service_key排序）"""
        with self._lock:
            return sorted(self._metadata.values(), key=lambda x: x["service_key"])

    def exists(self, service_key: str) -> bool:
        return service_key in self._handlers

    def count(self) -> int:
        return len(self._handlers)

    def resolve_config(self, service_key: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """以 config_schema 的默认值为底，合并调用方传入的配置"""
        schema = (self._metadata.get(service_key) or {}).get("config_schema") or {}
        resolved = {
            key: field["default"]
            for key, field in schema.items()
            if isinstance(field, dict) and "default" in field
        }
        resolved.update(config or {})
        return resolved

    async def run(self, service_key: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        执行服务Handler

        Raises:
            KeyError: 未注册的 service_key
            ValueError: Handler 返回值缺少必需字段
        """
        handler = self.get_handler(service_key)
        if handler is None:
            raise KeyError(f"No handler registered for service: {service_key}")

        resolved = self.resolve_config(service_key, config)
        logger.info(f"Running service handler: {service_key}")

        start = time.perf_counter()
        try:
            result = await handler(resolved)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Service handler failed: {service_key} ({elapsed_ms:.0f}ms): {e}", exc_info=True)
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        missing = [key for key in REQUIRED_RESULT_KEYS if key not in result]
        if missing:
            raise ValueError(f"Service handler {service_key} result missing keys: {missing}")

        logger.info(
            f"Service handler finished: {service_key} ({elapsed_ms:.0f}ms) "
            f"processed={result['records_processed']} updated={result['records_updated']}"
        )
        return result


# 全局单例
_registry_instance: Optional[ServiceHandlerRegistry] = None
_registry_lock = Lock()


def get_registry() -> ServiceHandlerRegistry:
    """获取全局注册表实例（线程安全）"""
    global _registry_instance

    if _registry_instance is None:
        with _registry_lock:
            if _registry_instance is None:
                _registry_instance = ServiceHandlerRegistry()
                logger.info("Service handler registry initialized")

    return _registry_instance

"""
MetaBridge 事件总线
基于 Redis Streams 实现持久化消息队列

两种投递模式：
- 流模式（默认）：publish 写入 Redis Stream，由消费组任务按序投递
- 本地模式：publish 直接调用进程内订阅者（单进程部署与测试）
"""
import json
import uuid
import asyncio
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Callable, Awaitable
from contextlib import asynccontextmanager

import redis.asyncio as redis

from mb_core.config import Settings, get_settings
from mb_core.utils.logger import get_logger

logger = get_logger(__name__)

TOPIC_PREFIX = "mb."

EventHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class EventPayload:
    """事件载荷"""

    def __init__(
        self,
        event_id: Optional[str] = None,
        topic: str = "",
        payload: Optional[Dict[str, Any]] = None,
        timestamp: Optional[str] = None
    ):
        self.event_id = event_id or str(uuid.uuid4())
        self.topic = topic
        self.payload = payload or {}
        self.timestamp = timestamp or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "event_id": self.event_id,
            "ts": self.timestamp,
            "topic": self.topic,
            "payload": self.payload
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventPayload":
        """从字典创建"""
        return cls(
            event_id=data.get("event_id"),
            topic=data.get("topic", ""),
            payload=data.get("payload", {}),
            timestamp=data.get("ts")
        )


class EventBus:
    """事件总线实现"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        redis_client: Optional[redis.Redis] = None,
        dispatch_local: bool = False,
    ):
        self.settings = settings or get_settings()
        self.redis_client = redis_client
        self.dispatch_local = dispatch_local
        self.subscriptions: Dict[str, List[EventHandler]] = {}
        self._consumer_tasks: List[asyncio.Task] = []
        self._running = False

    @asynccontextmanager
    async def _get_redis(self):
        """获取 Redis 连接"""
        if not self.redis_client:
            self.redis_client = redis.from_url(
                self.settings.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
        try:
            yield self.redis_client
        except Exception:
            logger.error("Redis operation failed", exc_info=True)
            raise

    async def initialize(self) -> None:
        """初始化事件总线"""
        logger.info("Initializing event bus", dispatch_local=self.dispatch_local)

        if not self.dispatch_local:
            async with self._get_redis() as r:
                await r.ping()

        self._running = True
        logger.info("Event bus initialized")

    async def shutdown(self) -> None:
        """关闭事件总线"""
        logger.info("Shutting down event bus")

        self._running = False

        for task in self._consumer_tasks:
            task.cancel()

        if self._consumer_tasks:
            await asyncio.gather(*self._consumer_tasks, return_exceptions=True)
        self._consumer_tasks.clear()

        if self.redis_client:
            await self.redis_client.aclose()

        logger.info("Event bus shutdown complete")

    @staticmethod
    def _validate_topic(topic: str) -> None:
        if not topic.startswith(TOPIC_PREFIX):
            raise ValueError(f"Invalid topic format: {topic}")

    def _get_stream_name(self, topic: str) -> str:
        """获取 Redis Stream 名称"""
        return f"mb:events:{topic}"

    def _get_consumer_group(self, topic: str) -> str:
        """获取消费组名称"""
        return f"mb:group:{topic}"

    async def publish(
        self,
        topic: str,
        payload: Dict[str, Any],
        key: Optional[str] = None
    ) -> str:
        """发布事件到指定主题"""
        self._validate_topic(topic)

        event = EventPayload(topic=topic, payload=payload)

        if self.dispatch_local:
            await self._trigger_handlers(topic, event)
            return event.event_id

        event_data = {"data": json.dumps(event.to_dict())}
        # key 用于同一实体的事件分区
        if key:
            event_data["key"] = key

        async with self._get_redis() as r:
            message_id = await r.xadd(self._get_stream_name(topic), event_data)

        logger.debug(f"Published event to {topic}",
                     event_id=event.event_id,
                     message_id=message_id)

        return event.event_id

    async def subscribe(self, topic: str, handler: EventHandler) -> None:
        """订阅事件主题"""
        self._validate_topic(topic)

        self.subscriptions.setdefault(topic, []).append(handler)

        if self.dispatch_local:
            logger.info(f"Subscribed to topic {topic} (local)")
            return

        stream_name = self._get_stream_name(topic)
        group_name = self._get_consumer_group(topic)

        async with self._get_redis() as r:
            try:
                await r.xgroup_create(stream_name, group_name, id="0", mkstream=True)
                logger.info(f"Created consumer group {group_name} for {stream_name}")
            except redis.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

        consumer_task = asyncio.create_task(self._consume_stream(topic, handler))
        self._consumer_tasks.append(consumer_task)

        logger.info(f"Subscribed to topic {topic}")

    async def _consume_stream(self, topic: str, handler: EventHandler) -> None:
        """消费 Redis Stream

        处理失败的消息不确认，保留在 pending 列表中等待重新投递。
        """
        stream_name = self._get_stream_name(topic)
        group_name = self._get_consumer_group(topic)
        consumer_name = f"{group_name}:{uuid.uuid4().hex[:8]}"

        logger.info(f"Starting consumer {consumer_name} for {topic}")

        while self._running:
            try:
                async with self._get_redis() as r:
                    messages = await r.xreadgroup(
                        group_name,
                        consumer_name,
                        {stream_name: ">"},
                        count=10,
                        block=1000  # 1秒超时
                    )

                    if not messages:
                        continue

                    for _stream, stream_messages in messages:
                        for message_id, data in stream_messages:
                            try:
                                event = EventPayload.from_dict(json.loads(data.get("data", "{}")))
                                await handler(event.payload)
                                await r.xack(stream_name, group_name, message_id)
                                logger.debug(f"Processed message {message_id} from {topic}")
                            except Exception:
                                logger.error(f"Error processing message {message_id}",
                                             topic=topic,
                                             exc_info=True)

            except asyncio.CancelledError:
                logger.info(f"Consumer {consumer_name} cancelled")
                break
            except Exception:
                logger.error(f"Consumer {consumer_name} error", exc_info=True)
                await asyncio.sleep(5)  # 错误后等待重试

    async def _trigger_handlers(self, topic: str, event: EventPayload) -> None:
        """触发内存中的事件处理器"""
        for handler in self.subscriptions.get(topic, []):
            try:
                await handler(event.payload)
            except Exception:
                logger.error(f"Handler error for topic {topic}",
                             handler=getattr(handler, "__name__", repr(handler)),
                             exc_info=True)


# 全局事件总线实例
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """获取事件总线单例"""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus

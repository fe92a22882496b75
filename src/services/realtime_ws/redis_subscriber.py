# src/services/realtime_ws/redis_subscriber.py
"""
Подписчик на Redis Pub/Sub для получения уведомлений от Orders API.

Слушает каналы <namespace>:notify:* и передаёт (topic, event, payload)
в обработчик.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Coroutine

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info, log_warning
from src.infra.redis_client import RedisClient

NotificationHandler = Callable[[str, str, dict[str, Any]], Coroutine[Any, Any, Any]]


class RedisSubscriber:
    """
    Подписчик на Redis Pub/Sub.

    Получает уведомления и передаёт их в локальную шину шлюза.
    """

    def __init__(
        self,
        redis: RedisClient,
        handler: NotificationHandler,
        channel_prefix: str | None = None,
    ) -> None:
        """
        Args:
            redis: Клиент Redis
            handler: Callback (topic, event_name, payload)
            channel_prefix: Префикс каналов уведомлений (из конфига если None)
        """
        if channel_prefix is None:
            from src.config import settings
            channel_prefix = settings.realtime.NOTIFY_CHANNEL_PREFIX

        self._redis = redis
        self._handler = handler
        # Полный префикс канала с namespace: pharmacy:notify:
        self._channel_prefix = redis.make_key(f"{channel_prefix}:")
        self._pubsub = None
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def pattern(self) -> str:
        return f"{self._channel_prefix}*"

    async def start(self) -> None:
        """Запустить подписчика."""
        if self._running:
            return

        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(self.pattern)
        self._running = True

        self._task = asyncio.create_task(self._listen())

        await log_info(f"Подписка на {self.pattern}", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Остановить подписчика."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            await self._pubsub.punsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None

    async def _listen(self) -> None:
        """Слушать сообщения из Redis."""
        while self._running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )

                if message is None:
                    continue

                await self.process_message(message)

            except asyncio.CancelledError:
                break
            except Exception as e:
                await log_error(f"Ошибка подписчика Redis: {e}", exc_info=True)
                await asyncio.sleep(1)

    async def process_message(self, message: dict[str, Any]) -> bool:
        """
        Обработать сообщение из Redis.

        Returns:
            True если уведомление передано обработчику
        """
        if message.get("type") not in ("message", "pmessage"):
            return False

        channel = message.get("channel", "")
        if isinstance(channel, bytes):
            channel = channel.decode("utf-8")

        if not channel.startswith(self._channel_prefix):
            return False
        topic = channel[len(self._channel_prefix):]

        data = message.get("data", "")
        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            await log_warning(f"Некорректный JSON в канале {channel}")
            return False

        event_name = parsed.get("event") if isinstance(parsed, dict) else None
        if not event_name:
            await log_warning(f"Сообщение без event в канале {channel}")
            return False

        await self._handler(topic, event_name, parsed.get("payload") or {})
        return True

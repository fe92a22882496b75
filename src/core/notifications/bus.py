# src/core/notifications/bus.py
"""
Шина уведомлений по топикам.
Доставка best-effort: не более одного раза за вызов, без хранения и повтора.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.infra.redis_client import RedisClient


class NotificationBus(ABC):
    """Публикация событий в топики buyer:<id> / seller:<id>."""

    @abstractmethod
    async def publish(self, topic: str, event_name: str, payload: dict[str, Any]) -> None:
        """
        Доставляет событие всем сессиям, подписанным на топик.

        Args:
            topic: Топик получателя
            event_name: Имя события (newOrder, orderResponse)
            payload: Данные события
        """


class RedisNotificationBus(NotificationBus):
    """
    Публикует уведомления в Redis Pub/Sub.

    Realtime-шлюз слушает каналы <prefix>:* и раздаёт сообщения
    подключённым сессиям.
    """

    def __init__(self, redis: RedisClient, channel_prefix: str | None = None) -> None:
        """
        Args:
            redis: Клиент Redis
            channel_prefix: Префикс канала (из конфига если None)
        """
        if channel_prefix is None:
            from src.config import settings
            channel_prefix = settings.realtime.NOTIFY_CHANNEL_PREFIX

        self._redis = redis
        self._prefix = channel_prefix

    def channel_for(self, topic: str) -> str:
        """Канал Redis для топика (без namespace)."""
        return f"{self._prefix}:{topic}"

    async def publish(self, topic: str, event_name: str, payload: dict[str, Any]) -> None:
        receivers = await self._redis.publish(
            self.channel_for(topic),
            {"event": event_name, "payload": payload},
        )
        await log_info(
            f"Событие {event_name} -> {topic} (шлюзов получило: {receivers})",
            type_msg=TypeMsg.DEBUG,
        )

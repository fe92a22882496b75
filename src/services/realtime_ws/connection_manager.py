# src/services/realtime_ws/connection_manager.py
"""
Менеджер WebSocket сессий.
Таблица подписок на топики и локальная доставка уведомлений.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.core.notifications.bus import NotificationBus


@dataclass
class SessionInfo:
    """Информация о сессии."""
    session_id: str
    websocket: WebSocket
    principal_id: str
    principal_type: str  # buyer, seller
    outbox: asyncio.Queue
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    topics: set[str] = field(default_factory=set)
    writer: asyncio.Task | None = None


class ConnectionManager(NotificationBus):
    """
    Менеджер WebSocket сессий.

    Поддерживает:
    - Подключение/отключение сессий (несколько на одного участника)
    - Подписка на топик при старте сессии, отписка при завершении
    - Доставку по топикам через очередь сессии

    У каждой сессии своя очередь и одна задача-писатель, поэтому
    порядок сообщений внутри сессии сохраняется, а publish никогда
    не ждёт сокет.
    """

    def __init__(self, queue_size: int | None = None) -> None:
        if queue_size is None:
            from src.config import settings
            queue_size = settings.realtime.SESSION_QUEUE_SIZE

        self._queue_size = queue_size

        # session_id -> SessionInfo
        self._sessions: dict[str, SessionInfo] = {}

        # topic -> set of session_ids
        self._subscriptions: dict[str, set[str]] = {}

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_sent: int = 0
        self._total_messages_dropped: int = 0

    @property
    def active_connections(self) -> int:
        """Количество активных сессий."""
        return len(self._sessions)

    async def connect(
        self,
        websocket: WebSocket,
        principal_id: str,
        principal_type: str,
        topic: str,
    ) -> str:
        """
        Принимает WebSocket и подписывает сессию на топик.

        Returns:
            ID новой сессии
        """
        await websocket.accept()

        session = SessionInfo(
            session_id=str(uuid4()),
            websocket=websocket,
            principal_id=principal_id,
            principal_type=principal_type,
            outbox=asyncio.Queue(maxsize=self._queue_size),
        )
        self._sessions[session.session_id] = session
        self._total_connections += 1

        self.subscribe(session.session_id, topic)
        session.writer = asyncio.create_task(self._writer(session))

        await log_info(
            f"WS сессия {session.session_id} открыта ({principal_type}:{principal_id}) -> {topic}",
            type_msg=TypeMsg.DEBUG,
        )
        return session.session_id

    def subscribe(self, session_id: str, topic: str) -> None:
        """Подписывает сессию на топик (buyer:{id}, seller:{id})."""
        session = self._sessions.get(session_id)
        if session is None:
            return

        session.topics.add(topic)
        self._subscriptions.setdefault(topic, set()).add(session_id)

    async def disconnect(self, session_id: str) -> None:
        """Завершает сессию и снимает все её подписки."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return

        for topic in session.topics:
            subscribers = self._subscriptions.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(session_id)
            if not subscribers:
                del self._subscriptions[topic]
        session.topics.clear()

        writer = session.writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

        await log_info(
            f"WS сессия {session_id} закрыта ({session.principal_type}:{session.principal_id})",
            type_msg=TypeMsg.DEBUG,
        )

    async def publish(self, topic: str, event_name: str, payload: dict[str, Any]) -> int:
        """
        Ставит событие в очереди всех сессий топика.

        Returns:
            Количество сессий, получивших сообщение в очередь
        """
        session_ids = self._subscriptions.get(topic)
        if not session_ids:
            return 0

        message = {"type": event_name, "topic": topic, "data": payload}
        queued = 0

        for session_id in list(session_ids):
            session = self._sessions.get(session_id)
            if session is None:
                continue
            try:
                session.outbox.put_nowait(message)
                queued += 1
            except asyncio.QueueFull:
                self._total_messages_dropped += 1
                await log_warning(
                    f"Очередь сессии {session_id} переполнена, {event_name} для {topic} пропущено"
                )

        return queued

    async def send_personal(self, session_id: str, message: dict[str, Any]) -> bool:
        """
        Ставит служебное сообщение в очередь одной сессии.

        Returns:
            True если сообщение поставлено, False если сессии нет
        """
        session = self._sessions.get(session_id)
        if session is None:
            return False
        try:
            session.outbox.put_nowait(message)
        except asyncio.QueueFull:
            self._total_messages_dropped += 1
            return False
        return True

    async def _writer(self, session: SessionInfo) -> None:
        """Пишет сообщения сессии в сокет по одному, в порядке очереди."""
        while True:
            message = await session.outbox.get()
            try:
                await session.websocket.send_json(message)
            except Exception as e:
                await log_warning(f"Отправка в WS сессию {session.session_id} не удалась: {e}")
                await self.disconnect(session.session_id)
                await self._close_websocket(session)
                return
            self._total_messages_sent += 1

    async def close_all(self) -> None:
        """Завершает все сессии (остановка шлюза)."""
        for session_id in list(self._sessions):
            session = self._sessions[session_id]
            await self.disconnect(session_id)
            await self._close_websocket(session)

    def get_session_topics(self, session_id: str) -> set[str]:
        """Получить все подписки сессии."""
        session = self._sessions.get(session_id)
        if session is None:
            return set()
        return session.topics.copy()

    def get_topic_subscribers(self, topic: str) -> set[str]:
        """Получить все сессии топика."""
        return self._subscriptions.get(topic, set()).copy()

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            "active_connections": len(self._sessions),
            "total_topics": len(self._subscriptions),
            "total_connections_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
            "total_messages_dropped": self._total_messages_dropped,
            "connections_by_type": self._count_by_type(),
        }

    def _count_by_type(self) -> dict[str, int]:
        """Подсчёт сессий по типу участника."""
        counts: dict[str, int] = {}
        for session in self._sessions.values():
            counts[session.principal_type] = counts.get(session.principal_type, 0) + 1
        return counts

    async def _close_websocket(self, session: SessionInfo) -> None:
        """Закрыть сокет сессии."""
        try:
            await session.websocket.close()
        except Exception as e:
            # Сокет уже закрыт клиентом
            await log_info(f"WS сессия {session.session_id}: close() -> {e}", type_msg=TypeMsg.DEBUG)


# Глобальный экземпляр
manager = ConnectionManager()

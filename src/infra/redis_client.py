# src/infra/redis_client.py
"""
Клиент Redis: гео-индекс продавцов, множества и Pub/Sub уведомлений.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis
from redis.asyncio.client import PubSub

from src.common.logger import log_error, log_info
from src.common.constants import TypeMsg


class RedisClient:
    """
    Асинхронный клиент Redis.
    Поддерживает:
    - Ключи с namespace
    - Geo-операции (GEOADD, GEOSEARCH)
    - Операции над множествами
    - Pub/Sub
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "pharmacy"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def make_key(self, key: str) -> str:
        """Добавляет namespace к ключу или каналу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis (если None, берётся из конфига)
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей
        """
        if self._client is not None:
            return

        if url is None:
            from src.config import settings
            url = settings.redis.url
            max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            namespace = settings.redis.REDIS_NAMESPACE

        if namespace:
            self._namespace = namespace

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )

        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # GEO ОПЕРАЦИИ
    # =========================================================================

    async def geoadd(
        self,
        key: str,
        longitude: float,
        latitude: float,
        member: str,
    ) -> int:
        """
        Добавляет или обновляет геопозицию участника.

        Returns:
            Количество добавленных элементов (0 при обновлении)
        """
        return await self.client.geoadd(
            self.make_key(key),
            (longitude, latitude, member),
        )

    async def geosearch(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: str = "m",
        count: int | None = None,
        sort: str = "ASC",
    ) -> list[tuple[str, float]]:
        """
        Ищет участников в радиусе от точки.

        Args:
            key: Ключ geo-индекса
            longitude: Долгота центра
            latitude: Широта центра
            radius: Радиус поиска
            unit: Единица измерения (m, km, mi, ft)
            count: Максимальное количество результатов
            sort: Сортировка по расстоянию (ASC, DESC)

        Returns:
            Список кортежей (member, distance) в единицах unit
        """
        results = await self.client.geosearch(
            self.make_key(key),
            longitude=longitude,
            latitude=latitude,
            radius=radius,
            unit=unit,
            sort=sort,
            count=count,
            withdist=True,
        )
        return [(member, float(distance)) for member, distance in results]

    async def georem(self, key: str, member: str) -> int:
        """Удаляет участника из geo-индекса."""
        return await self.client.zrem(self.make_key(key), member)

    # =========================================================================
    # SET ОПЕРАЦИИ
    # =========================================================================

    async def sadd(self, key: str, *members: str) -> int:
        """Добавляет элементы в множество."""
        return await self.client.sadd(self.make_key(key), *members)

    async def srem(self, key: str, *members: str) -> int:
        """Удаляет элементы из множества."""
        return await self.client.srem(self.make_key(key), *members)

    async def smismember(self, key: str, members: list[str]) -> list[bool]:
        """Проверяет принадлежность нескольких элементов за один запрос."""
        if not members:
            return []
        result = await self.client.smismember(self.make_key(key), members)
        return [bool(flag) for flag in result]

    # =========================================================================
    # PUB/SUB
    # =========================================================================

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        """
        Публикует JSON-сообщение в канал.

        Returns:
            Количество подписчиков, получивших сообщение
        """
        data = json.dumps(message, ensure_ascii=False, default=str)
        return await self.client.publish(self.make_key(channel), data)

    def pubsub(self) -> PubSub:
        """Возвращает новый объект подписки."""
        return self.client.pubsub()

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> None:
    """Инициализирует подключение к Redis по настройкам из конфига."""
    from src.config import settings

    await get_redis().connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    await get_redis().disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)

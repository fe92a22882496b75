# src/core/geo/index.py
"""
Гео-индекс продавцов.
Использует Redis Geo для поиска ближайших аптек, принимающих заказы.
"""

from __future__ import annotations

import math
from typing import Any

from src.common.constants import TypeMsg
from src.common.exceptions import InvalidGeometry
from src.common.logger import log_info
from src.core.geo.models import GeoPoint, SellerLocation, SellerMatch, is_number
from src.infra.redis_client import RedisClient


class GeoIndex:
    """
    Гео-индекс продавцов.

    Позиции хранятся в GEO-множестве, флаг «принимает заказы» — в
    отдельном множестве. Поиск возвращает только принимающих продавцов,
    отсортированных по расстоянию (ближайший первым).
    """

    def __init__(
        self,
        redis: RedisClient,
        geo_key: str | None = None,
        accepting_key: str | None = None,
    ) -> None:
        """
        Args:
            redis: Клиент Redis
            geo_key: Ключ GEO-множества (из конфига если None)
            accepting_key: Ключ множества принимающих продавцов (из конфига если None)
        """
        if geo_key is None or accepting_key is None:
            from src.config import settings
            geo_key = geo_key or settings.matching.SELLERS_GEO_KEY
            accepting_key = accepting_key or settings.matching.SELLERS_ACCEPTING_KEY

        self._redis = redis
        self._geo_key = geo_key
        self._accepting_key = accepting_key

    async def find_nearby(
        self,
        point: GeoPoint | tuple[Any, Any],
        max_distance_meters: float,
    ) -> list[SellerMatch]:
        """
        Ищет принимающих заказы продавцов в радиусе от точки.

        Args:
            point: Точка (longitude, latitude)
            max_distance_meters: Радиус поиска в метрах, > 0

        Returns:
            Продавцы по возрастанию расстояния; пустой список — не ошибка

        Raises:
            InvalidGeometry: некорректная точка или радиус
        """
        if not isinstance(point, GeoPoint):
            try:
                longitude, latitude = point
            except (TypeError, ValueError):
                raise InvalidGeometry("point must be a (longitude, latitude) pair") from None
            point = GeoPoint.of(longitude, latitude)

        if (
            not is_number(max_distance_meters)
            or not math.isfinite(max_distance_meters)
            or max_distance_meters <= 0
        ):
            raise InvalidGeometry("max_distance_meters must be a positive number")

        candidates = await self._redis.geosearch(
            self._geo_key,
            point.longitude,
            point.latitude,
            max_distance_meters,
            unit="m",
            sort="ASC",
        )

        if not candidates:
            return []

        flags = await self._redis.smismember(
            self._accepting_key,
            [seller_id for seller_id, _ in candidates],
        )

        matches = [
            SellerMatch(seller_id=seller_id, distance_meters=round(distance, 1))
            for (seller_id, distance), accepting in zip(candidates, flags)
            if accepting
        ]
        # Redis уже отдал по возрастанию, сортировка фиксирует контракт
        matches.sort(key=lambda match: match.distance_meters)

        await log_info(
            f"Найдено {len(matches)} продавцов в радиусе {max_distance_meters:g} м "
            f"(всего в радиусе: {len(candidates)})",
            type_msg=TypeMsg.DEBUG,
        )

        return matches

    # =========================================================================
    # ОБСЛУЖИВАНИЕ ИНДЕКСА
    # =========================================================================

    async def upsert_seller(self, seller: SellerLocation) -> None:
        """Добавляет или обновляет позицию и флаг продавца."""
        await self._redis.geoadd(
            self._geo_key,
            seller.point.longitude,
            seller.point.latitude,
            seller.seller_id,
        )
        await self.set_accepting(seller.seller_id, seller.accepting_orders)

    async def set_accepting(self, seller_id: str, accepting: bool) -> None:
        """Включает или выключает приём заказов продавцом."""
        if accepting:
            await self._redis.sadd(self._accepting_key, seller_id)
        else:
            await self._redis.srem(self._accepting_key, seller_id)

        await log_info(
            f"Продавец {seller_id}: приём заказов {'включён' if accepting else 'выключен'}",
            type_msg=TypeMsg.DEBUG,
        )

    async def remove_seller(self, seller_id: str) -> None:
        """Удаляет продавца из индекса."""
        await self._redis.georem(self._geo_key, seller_id)
        await self._redis.srem(self._accepting_key, seller_id)

# src/core/geo/models.py
"""
Гео-модели: точка и найденный продавец.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from src.common.constants import seller_topic
from src.common.exceptions import InvalidGeometry


# Пределы широты, которые принимает Redis GEO (проекция Web Mercator)
GEO_LATITUDE_LIMIT = 85.05112878


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class GeoPoint:
    """Точка (долгота, широта) в градусах WGS84."""
    longitude: float
    latitude: float

    @classmethod
    def of(cls, longitude: Any, latitude: Any) -> GeoPoint:
        """
        Создаёт точку с проверкой координат.

        Raises:
            InvalidGeometry: если координаты не конечные числа или вне диапазона
        """
        if not (is_number(longitude) and is_number(latitude)):
            raise InvalidGeometry("longitude and latitude must be numbers")
        if not (math.isfinite(longitude) and math.isfinite(latitude)):
            raise InvalidGeometry("longitude and latitude must be finite")
        if not (-180.0 <= longitude <= 180.0 and -GEO_LATITUDE_LIMIT <= latitude <= GEO_LATITUDE_LIMIT):
            raise InvalidGeometry(f"coordinates out of range: ({longitude}, {latitude})")
        return cls(float(longitude), float(latitude))

    def as_pair(self) -> list[float]:
        """[longitude, latitude] в порядке GeoJSON."""
        return [self.longitude, self.latitude]


@dataclass(frozen=True)
class SellerMatch:
    """Продавец, найденный в радиусе."""
    seller_id: str
    distance_meters: float

    @property
    def topic(self) -> str:
        """Топик для realtime-уведомлений продавца."""
        return seller_topic(self.seller_id)


@dataclass
class SellerLocation:
    """Запись продавца в гео-индексе."""
    seller_id: str
    point: GeoPoint
    accepting_orders: bool = True

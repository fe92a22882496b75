# tests/fakes.py
"""
In-memory двойники хранилища, Redis и шины уведомлений.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

from src.common.constants import OrderStatus
from src.common.exceptions import Conflict, InvalidTransition, NotFound
from src.core.notifications.bus import NotificationBus
from src.core.orders.models import Order, OrderDraft
from src.core.orders.repository import validate_draft
from src.core.orders.state_machine import OrderStateMachine

# Радиус Земли, который использует Redis для GEO-команд
EARTH_RADIUS_METERS = 6372797.560856


def haversine_meters(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    d_lat = lat2_r - lat1_r
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def north_of(longitude: float, latitude: float, meters: float) -> tuple[float, float]:
    """Точка на meters севернее исходной."""
    return longitude, latitude + math.degrees(meters / EARTH_RADIUS_METERS)


class FakeRedisClient:
    """Подмножество RedisClient: GEO, множества и publish."""

    def __init__(self) -> None:
        self.geo: dict[str, dict[str, tuple[float, float]]] = {}
        self.sets: dict[str, set[str]] = {}
        self.published: list[tuple[str, dict[str, Any]]] = []

    def make_key(self, key: str) -> str:
        return f"pharmacy:{key}"

    async def geoadd(self, key: str, longitude: float, latitude: float, member: str) -> int:
        members = self.geo.setdefault(key, {})
        added = 0 if member in members else 1
        members[member] = (longitude, latitude)
        return added

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
        assert unit == "m"
        found = [
            (member, haversine_meters(longitude, latitude, lon, lat))
            for member, (lon, lat) in self.geo.get(key, {}).items()
        ]
        found = [(member, distance) for member, distance in found if distance <= radius]
        found.sort(key=lambda pair: pair[1], reverse=(sort == "DESC"))
        return found[:count] if count else found

    async def georem(self, key: str, member: str) -> int:
        return 1 if self.geo.get(key, {}).pop(member, None) else 0

    async def sadd(self, key: str, *members: str) -> int:
        target = self.sets.setdefault(key, set())
        before = len(target)
        target.update(members)
        return len(target) - before

    async def srem(self, key: str, *members: str) -> int:
        target = self.sets.get(key, set())
        removed = len(target & set(members))
        target.difference_update(members)
        return removed

    async def smismember(self, key: str, members: list[str]) -> list[bool]:
        target = self.sets.get(key, set())
        return [member in target for member in members]

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        self.published.append((channel, message))
        return 1


class RecordingBus(NotificationBus):
    """Запоминает опубликованные события; топики из failing_topics падают."""

    def __init__(self, failing_topics: set[str] | None = None) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.failing_topics = failing_topics or set()

    async def publish(self, topic: str, event_name: str, payload: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if topic in self.failing_topics:
            raise ConnectionError(f"delivery to {topic} failed")
        self.events.append((topic, event_name, payload))

    def topics(self, event_name: str | None = None) -> list[str]:
        return [topic for topic, name, _ in self.events if event_name in (None, name)]


class InMemoryOrderStore:
    """
    Хранилище заказов в памяти с тем же контрактом, что OrderStore.

    Проверка статуса и запись в transition идут без await между ними,
    что повторяет атомарность условного UPDATE.
    """

    def __init__(self) -> None:
        self.orders: dict[str, Order] = {}
        self._clock = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def create(self, draft: OrderDraft) -> Order:
        location = validate_draft(draft)
        await asyncio.sleep(0)
        now = self._now()
        order = Order(
            id=str(uuid4()),
            buyer_id=draft.buyer_id,
            items=draft.items,
            total_amount=draft.total_amount,
            location=location,
            prescription_image=draft.prescription_image,
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.orders[order.id] = order
        return order

    async def get(self, order_id: str) -> Order:
        await asyncio.sleep(0)
        if order_id not in self.orders:
            raise NotFound(f"Order {order_id} not found")
        return self.orders[order_id]

    async def list_by_buyer(self, buyer_id: str) -> list[Order]:
        orders = [order for order in self.orders.values() if order.buyer_id == buyer_id]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[Order]:
        orders = sorted(self.orders.values(), key=lambda order: order.created_at, reverse=True)
        return orders[offset:offset + limit]

    async def transition(
        self,
        order_id: str,
        expected_status: OrderStatus,
        new_status: OrderStatus,
        seller_id: Optional[str] = None,
    ) -> Order:
        if not OrderStateMachine.can_transition(expected_status, new_status):
            raise InvalidTransition(f"Transition {expected_status} -> {new_status} is not allowed")

        await asyncio.sleep(0)

        current = self.orders.get(order_id)
        if current is None:
            raise NotFound(f"Order {order_id} not found")
        if current.status != expected_status:
            raise Conflict(current.status.value)

        now = self._now()
        update: dict[str, Any] = {"status": OrderStatus(new_status), "updated_at": now}
        if seller_id is not None and current.seller_id is None:
            update.update(seller_id=seller_id, responded_at=now)

        updated = current.model_copy(update=update)
        self.orders[order_id] = updated
        return updated

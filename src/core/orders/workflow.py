# src/core/orders/workflow.py
"""
Оркестрация заказа: размещение с поиском аптек и ответ продавца.
Состояния не хранит; единственный примитив конкуренции — условное
обновление в OrderStore.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from src.common.constants import (
    NotificationEvent,
    OrderStatus,
    ResponseAction,
    TypeMsg,
    buyer_topic,
)
from src.common.exceptions import AlreadyResolved, Conflict, InvalidInput, NotFound, OrderNotFound
from src.common.logger import log_error, log_info
from src.core.geo.index import GeoIndex
from src.core.geo.models import GeoPoint
from src.core.notifications.bus import NotificationBus
from src.core.orders.models import Order, OrderDraft, OrderLocation
from src.core.orders.repository import OrderStore

RESPONSE_STATUS = {
    ResponseAction.ACCEPT: OrderStatus.ACCEPTED,
    ResponseAction.REJECT: OrderStatus.REJECTED,
}


def resolve_location(raw: Any) -> tuple[tuple[Any, Any], Optional[str]]:
    """
    Приводит точку доставки клиента к паре (longitude, latitude).

    Поддерживаемые формы:
        {"coordinates": [lon, lat], "address": ...}
        [lon, lat]
        {"longitude": lon, "latitude": lat, "address": ...}

    Returns:
        ((longitude, latitude), address)

    Raises:
        InvalidInput: форма не распознана
    """
    if isinstance(raw, OrderLocation):
        return (raw.longitude, raw.latitude), raw.address

    if isinstance(raw, Mapping):
        address = raw.get("address")
        if address is not None and not isinstance(address, str):
            raise InvalidInput("location.address must be a string")

        coordinates = raw.get("coordinates")
        if _is_pair(coordinates):
            return (coordinates[0], coordinates[1]), address

        if "longitude" in raw and "latitude" in raw:
            return (raw["longitude"], raw["latitude"]), address

        raise InvalidInput("location must contain coordinates [longitude, latitude]")

    if _is_pair(raw):
        return (raw[0], raw[1]), None

    raise InvalidInput("location is required: [longitude, latitude] or {longitude, latitude}")


def _is_pair(value: Any) -> bool:
    return (
        isinstance(value, Sequence)
        and not isinstance(value, (str, bytes))
        and len(value) == 2
    )


class OrderWorkflow:
    """
    Сценарии заказа.

    place_order: точка -> поиск аптек -> запись -> рассылка продавцам.
    respond_to_order: условный переход pending -> accepted|rejected ->
    уведомление покупателя.
    """

    def __init__(
        self,
        store: OrderStore,
        geo_index: GeoIndex,
        bus: NotificationBus,
        radius_meters: float | None = None,
    ) -> None:
        """
        Args:
            store: Хранилище заказов
            geo_index: Гео-индекс продавцов
            bus: Шина уведомлений
            radius_meters: Радиус поиска аптек (из конфига если None)
        """
        if radius_meters is None:
            from src.config import settings
            radius_meters = settings.matching.MATCHING_RADIUS_METERS

        self._store = store
        self._geo = geo_index
        self._bus = bus
        self._radius_meters = radius_meters

    # =========================================================================
    # РАЗМЕЩЕНИЕ ЗАКАЗА
    # =========================================================================

    async def place_order(self, draft: OrderDraft) -> tuple[Order, int]:
        """
        Размещает заказ и рассылает его ближайшим аптекам.

        Args:
            draft: Черновик заказа от покупателя

        Returns:
            (заказ, количество найденных аптек); 0 аптек — не ошибка

        Raises:
            InvalidInput: точка доставки не распознана
            InvalidGeometry: координаты не конечные или вне диапазона
            ValidationError: черновик не прошёл проверку хранилища
        """
        (longitude, latitude), address = resolve_location(draft.location)
        point = GeoPoint.of(longitude, latitude)

        matches = await self._geo.find_nearby(point, self._radius_meters)

        normalized = draft.model_copy(
            update={"location": OrderLocation(coordinates=point.as_pair(), address=address)}
        )
        order = await self._store.create(normalized)

        if matches:
            payload = order.to_payload()
            await asyncio.gather(
                *(
                    self._deliver(match.topic, NotificationEvent.NEW_ORDER, payload)
                    for match in matches
                )
            )

        await log_info(
            f"Заказ {order.id} размещён, найдено аптек: {len(matches)}",
            type_msg=TypeMsg.INFO,
        )

        return order, len(matches)

    async def _deliver(
        self,
        topic: str,
        event: NotificationEvent,
        payload: dict[str, Any],
    ) -> None:
        """Доставка одному получателю; ошибка логируется и не влияет на остальных."""
        try:
            await self._bus.publish(topic, event.value, payload)
        except Exception as e:
            await log_error(
                f"Не удалось доставить {event.value} в {topic}: {e}",
                exc_info=True,
            )

    # =========================================================================
    # ОТВЕТ ПРОДАВЦА
    # =========================================================================

    async def respond_to_order(
        self,
        order_id: str,
        seller_id: str,
        action: ResponseAction | str,
    ) -> Order:
        """
        Фиксирует ответ продавца. Побеждает ровно один продавец.

        Args:
            order_id: UUID заказа
            seller_id: ID продавца
            action: accept или reject

        Returns:
            Обновлённый заказ

        Raises:
            InvalidInput: неизвестное действие
            OrderNotFound: заказ не существует
            AlreadyResolved: заказ уже не в pending
        """
        try:
            action = ResponseAction(action)
        except ValueError:
            raise InvalidInput("action must be 'accept' or 'reject'") from None

        try:
            order = await self._store.transition(
                order_id,
                OrderStatus.PENDING,
                RESPONSE_STATUS[action],
                seller_id=seller_id,
            )
        except Conflict as e:
            raise AlreadyResolved(e.current_status) from None
        except NotFound:
            raise OrderNotFound(f"Order {order_id} not found") from None

        await log_info(
            f"Продавец {seller_id}: заказ {order_id} -> {order.status.value}",
            type_msg=TypeMsg.INFO,
        )

        timestamp = order.responded_at or datetime.now(timezone.utc)
        await self._deliver(
            buyer_topic(order.buyer_id),
            NotificationEvent.ORDER_RESPONSE,
            {
                "orderId": order.id,
                "status": order.status.value,
                "sellerId": seller_id,
                "timestamp": timestamp.isoformat(),
            },
        )

        return order

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        return await self._store.get(order_id)

    async def list_orders_for_buyer(self, buyer_id: str) -> list[Order]:
        return await self._store.list_by_buyer(buyer_id)

    async def list_orders(self, limit: int = 100, offset: int = 0) -> list[Order]:
        return await self._store.list_all(limit=limit, offset=offset)

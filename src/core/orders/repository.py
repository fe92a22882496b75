# src/core/orders/repository.py
"""
Хранилище заказов в PostgreSQL.
Смена статуса — одно условное обновление, без чтения перед записью.
"""

from __future__ import annotations

import json
import math
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from src.common.constants import OrderStatus, TypeMsg
from src.common.exceptions import Conflict, InvalidTransition, NotFound, ValidationError
from src.common.logger import log_info
from src.core.orders.models import Order, OrderDraft, OrderItem, OrderLocation
from src.core.orders.state_machine import OrderStateMachine
from src.infra.database import DatabaseManager

ORDER_COLUMNS = """
    id, buyer_id, seller_id, items, total_amount,
    longitude, latitude, address, prescription_image,
    status, responded_at, created_at, updated_at
"""


def validate_draft(draft: OrderDraft) -> OrderLocation:
    """
    Проверяет черновик перед записью.

    Returns:
        Нормализованная точка доставки

    Raises:
        ValidationError: пустые позиции, quantity < 1, price < 0,
            total < 0 или некорректная точка
    """
    if not draft.items:
        raise ValidationError("Order must contain at least one item")

    for index, item in enumerate(draft.items):
        if item.quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be at least 1")
        if not math.isfinite(item.price) or item.price < 0:
            raise ValidationError(f"items[{index}].price must be non-negative")

    if not math.isfinite(draft.total_amount) or draft.total_amount < 0:
        raise ValidationError("totalAmount must be non-negative")

    location = draft.location
    if not isinstance(location, OrderLocation):
        try:
            location = OrderLocation.model_validate(location)
        except PydanticValidationError:
            raise ValidationError("location is malformed") from None

    if len(location.coordinates) != 2:
        raise ValidationError("location.coordinates must be [longitude, latitude]")

    longitude, latitude = location.coordinates
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        raise ValidationError("location.coordinates must be finite")
    if not (-180.0 <= longitude <= 180.0 and -90.0 <= latitude <= 90.0):
        raise ValidationError("location.coordinates out of range")

    return location


class OrderStore:
    """Хранилище заказов."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Инициализация хранилища.

        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def create(self, draft: OrderDraft) -> Order:
        """
        Создаёт заказ в статусе pending.

        Args:
            draft: Черновик заказа

        Returns:
            Сохранённый заказ с id и временными метками

        Raises:
            ValidationError: черновик не прошёл проверку
        """
        location = validate_draft(draft)
        order_id = str(uuid4())
        items = [item.model_dump(mode="json", by_alias=True) for item in draft.items]

        row = await self._db.fetchrow(
            f"""
            INSERT INTO orders (
                id, buyer_id, items, total_amount,
                longitude, latitude, address, prescription_image, status
            )
            VALUES ($1, $2, $3::jsonb, $4, $5, $6, $7, $8, $9)
            RETURNING {ORDER_COLUMNS}
            """,
            order_id,
            draft.buyer_id,
            json.dumps(items, ensure_ascii=False),
            draft.total_amount,
            location.longitude,
            location.latitude,
            location.address,
            draft.prescription_image,
            OrderStatus.PENDING.value,
            retry=False,
        )

        await log_info(
            f"Заказ {order_id} создан покупателем {draft.buyer_id}",
            type_msg=TypeMsg.INFO,
        )

        return self._row_to_order(row)

    async def get(self, order_id: str) -> Order:
        """
        Получает заказ по ID.

        Raises:
            NotFound: заказ не существует
        """
        row = await self._db.fetchrow(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = $1",
            order_id,
        )
        if row is None:
            raise NotFound(f"Order {order_id} not found")
        return self._row_to_order(row)

    async def list_by_buyer(self, buyer_id: str) -> list[Order]:
        """Заказы покупателя, новые первыми."""
        rows = await self._db.fetch(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            WHERE buyer_id = $1
            ORDER BY created_at DESC
            """,
            buyer_id,
        )
        return [self._row_to_order(row) for row in rows]

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[Order]:
        """Все заказы, новые первыми."""
        rows = await self._db.fetch(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [self._row_to_order(row) for row in rows]

    async def transition(
        self,
        order_id: str,
        expected_status: OrderStatus,
        new_status: OrderStatus,
        seller_id: Optional[str] = None,
    ) -> Order:
        """
        Условно переводит заказ из expected_status в new_status.

        Если передан seller_id, фиксирует продавца и время ответа
        (только один раз за жизнь заказа).

        Args:
            order_id: UUID заказа
            expected_status: Статус, в котором заказ должен находиться
            new_status: Новый статус
            seller_id: ID ответившего продавца

        Returns:
            Обновлённый заказ

        Raises:
            InvalidTransition: переход запрещён машиной состояний
            Conflict: текущий статус отличается от ожидаемого
            NotFound: заказ не существует
        """
        expected = OrderStatus(expected_status)
        new = OrderStatus(new_status)

        if not OrderStateMachine.can_transition(expected, new):
            raise InvalidTransition(
                f"Transition {expected.value} -> {new.value} is not allowed"
            )

        row = await self._db.fetchrow(
            f"""
            UPDATE orders
            SET status = $3,
                seller_id = COALESCE(seller_id, $4::text),
                responded_at = CASE
                    WHEN $4::text IS NULL THEN responded_at
                    ELSE COALESCE(responded_at, NOW())
                END,
                updated_at = NOW()
            WHERE id = $1 AND status = $2
            RETURNING {ORDER_COLUMNS}
            """,
            order_id,
            expected.value,
            new.value,
            seller_id,
            retry=False,
        )

        if row is not None:
            return self._row_to_order(row)

        current_status = await self._db.fetchval(
            "SELECT status FROM orders WHERE id = $1",
            order_id,
        )
        if current_status is None:
            raise NotFound(f"Order {order_id} not found")
        raise Conflict(current_status)

    def _row_to_order(self, row: Any) -> Order:
        """Конвертирует строку БД в модель Order."""
        items = row["items"]
        if isinstance(items, str):
            items = json.loads(items)

        return Order(
            id=row["id"],
            buyer_id=row["buyer_id"],
            seller_id=row["seller_id"],
            items=[OrderItem.model_validate(item) for item in items],
            total_amount=float(row["total_amount"]),
            location=OrderLocation(
                coordinates=[row["longitude"], row["latitude"]],
                address=row["address"],
            ),
            prescription_image=row["prescription_image"],
            status=OrderStatus(row["status"]),
            responded_at=row["responded_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

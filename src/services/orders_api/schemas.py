# src/services/orders_api/schemas.py
"""
Схемы запросов и ответов Orders API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.common.constants import OrderStatus, ResponseAction
from src.common.exceptions import InvalidInput
from src.core.orders.models import Order, OrderDraft, OrderItem

# Совместимость со старым клиентом: {"status": "accepted"}
STATUS_TO_ACTION = {
    OrderStatus.ACCEPTED.value: ResponseAction.ACCEPT,
    OrderStatus.REJECTED.value: ResponseAction.REJECT,
}


class PlaceOrderRequest(BaseModel):
    """Запрос на размещение заказа."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[OrderItem]
    total_amount: float
    location: Any = None
    prescription_image: Optional[str] = None
    buyer_id: Optional[str] = Field(None, description="Если передан, должен совпадать с участником")

    def to_draft(self, buyer_id: str) -> OrderDraft:
        return OrderDraft(
            buyer_id=buyer_id,
            items=self.items,
            total_amount=self.total_amount,
            location=self.location,
            prescription_image=self.prescription_image,
        )


class RespondRequest(BaseModel):
    """Ответ аптеки: action (accept/reject) или status (accepted/rejected)."""

    action: Optional[str] = None
    status: Optional[str] = None

    def resolve_action(self) -> ResponseAction:
        """
        Raises:
            InvalidInput: ни одно из полей не задаёт допустимое действие
        """
        if self.action is not None:
            try:
                return ResponseAction(self.action)
            except ValueError:
                raise InvalidInput("action must be 'accept' or 'reject'") from None

        if self.status in STATUS_TO_ACTION:
            return STATUS_TO_ACTION[self.status]

        raise InvalidInput("action must be 'accept' or 'reject'")


class PlaceOrderResponse(BaseModel):
    """Результат размещения заказа."""
    success: bool = True
    orderId: str
    status: str
    matchedSellerCount: int
    order: dict[str, Any]

    @classmethod
    def from_order(cls, order: Order, matched: int) -> PlaceOrderResponse:
        return cls(
            orderId=order.id,
            status=order.status.value,
            matchedSellerCount=matched,
            order=order.to_payload(),
        )


class OrderResponse(BaseModel):
    """Заказ после ответа аптеки или при чтении."""
    success: bool = True
    orderId: str
    status: str
    order: dict[str, Any]

    @classmethod
    def from_order(cls, order: Order) -> OrderResponse:
        return cls(orderId=order.id, status=order.status.value, order=order.to_payload())


class OrderListResponse(BaseModel):
    """Список заказов, новые первыми."""
    success: bool = True
    count: int
    orders: list[dict[str, Any]]

    @classmethod
    def from_orders(cls, orders: list[Order]) -> OrderListResponse:
        return cls(count=len(orders), orders=[order.to_payload() for order in orders])

# src/core/orders/models.py
"""
Модели данных заказов.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.common.constants import OrderStatus


class _CamelModel(BaseModel):
    """Внешнее представление в camelCase, внутри — snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OrderItem(_CamelModel):
    """Позиция заказа."""

    medicine_id: Optional[str] = Field(None, description="ID лекарства в каталоге")
    name: Optional[str] = Field(None, description="Название")
    manufacturer: Optional[str] = Field(None, description="Производитель")
    price: float = Field(..., description="Цена за единицу")
    quantity: int = Field(..., description="Количество")


class OrderLocation(_CamelModel):
    """Точка доставки в формате GeoJSON Point."""

    coordinates: list[float] = Field(..., description="[longitude, latitude]")
    address: Optional[str] = Field(None, description="Адрес доставки")

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class OrderDraft(_CamelModel):
    """
    Черновик заказа от покупателя.

    location принимается в любой из форм клиента и приводится к
    OrderLocation в OrderWorkflow до записи в хранилище.
    """

    buyer_id: str = Field(..., min_length=1, description="ID покупателя")
    items: list[OrderItem] = Field(..., description="Позиции заказа")
    total_amount: float = Field(..., description="Сумма заказа")
    location: Any = Field(..., description="Точка доставки")
    prescription_image: Optional[str] = Field(None, description="Ссылка на рецепт")


class Order(_CamelModel):
    """Модель заказа."""

    id: str = Field(..., description="UUID заказа")
    buyer_id: str = Field(..., description="ID покупателя")
    seller_id: Optional[str] = Field(None, description="ID ответившего продавца")

    items: list[OrderItem] = Field(..., min_length=1)
    total_amount: float = Field(..., ge=0.0)
    location: OrderLocation
    prescription_image: Optional[str] = None

    status: OrderStatus = Field(OrderStatus.PENDING, description="Статус заказа")

    responded_at: Optional[datetime] = Field(None, description="Время ответа продавца")
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _check_response_pair(self) -> Order:
        if (self.seller_id is None) != (self.responded_at is None):
            raise ValueError("seller_id и responded_at задаются только вместе")
        if self.responded_at is not None and self.responded_at < self.created_at:
            raise ValueError("responded_at раньше created_at")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Сериализация для API и уведомлений."""
        return self.model_dump(mode="json", by_alias=True)

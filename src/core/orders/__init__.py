# src/core/orders/__init__.py
"""
Домен заказов.
Модели, хранилище и сценарии заказа.
"""

from src.core.orders.models import Order, OrderDraft, OrderItem, OrderLocation
from src.core.orders.repository import OrderStore
from src.core.orders.state_machine import OrderStateMachine
from src.core.orders.workflow import OrderWorkflow

__all__ = [
    "Order",
    "OrderDraft",
    "OrderItem",
    "OrderLocation",
    "OrderStore",
    "OrderStateMachine",
    "OrderWorkflow",
]

# src/core/__init__.py
"""
Доменный слой (Core Domain).
Бизнес-логика заказов, гео-поиска и уведомлений.
"""

from src.core.geo import GeoIndex, GeoPoint, SellerMatch
from src.core.notifications import NotificationBus
from src.core.orders import Order, OrderStore, OrderWorkflow

__all__ = [
    "GeoIndex",
    "GeoPoint",
    "SellerMatch",
    "NotificationBus",
    "Order",
    "OrderStore",
    "OrderWorkflow",
]

"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class PrincipalType(str, Enum):
    """Типы участников площадки."""
    BUYER = "buyer"
    SELLER = "seller"


class OrderStatus(str, Enum):
    """Статусы заказа."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ResponseAction(str, Enum):
    """Ответ продавца на заказ."""
    ACCEPT = "accept"
    REJECT = "reject"


class NotificationEvent(str, Enum):
    """Имена событий realtime-канала."""
    NEW_ORDER = "newOrder"
    ORDER_RESPONSE = "orderResponse"


def buyer_topic(buyer_id: str) -> str:
    """Топик покупателя."""
    return f"buyer:{buyer_id}"


def seller_topic(seller_id: str) -> str:
    """Топик продавца."""
    return f"seller:{seller_id}"

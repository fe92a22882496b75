# src/core/notifications/__init__.py
"""
Домен уведомлений.
Публикация событий покупателям и продавцам.
"""

from src.core.notifications.bus import NotificationBus, RedisNotificationBus

__all__ = [
    "NotificationBus",
    "RedisNotificationBus",
]

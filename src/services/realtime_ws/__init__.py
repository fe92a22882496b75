# src/services/realtime_ws/__init__.py
"""
Realtime WebSocket Gateway — сервис уведомлений.

Обеспечивает:
- WebSocket сессии покупателей и аптек
- Таблицу подписок сессий на топики
- Подписку на Redis Pub/Sub уведомлений от Orders API
"""

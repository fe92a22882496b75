# src/services/__init__.py
"""
Сервисы приложения.

Архитектура:
- Каждый сервис — независимое FastAPI-приложение
- Общая PostgreSQL для заказов
- Redis для гео-индекса аптек и Pub/Sub уведомлений

Сервисы:
- orders_api: размещение заказов и ответы аптек
- realtime_ws: WebSocket сессии покупателей и аптек
"""

__all__: list[str] = []

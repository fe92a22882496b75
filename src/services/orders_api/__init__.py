# src/services/orders_api/__init__.py
"""
Orders API — REST сервис заказов.

Обеспечивает:
- Размещение заказа с поиском ближайших аптек
- Ответ аптеки на заказ (побеждает один продавец)
- Чтение заказов покупателя и общей ленты
"""

# src/shared/__init__.py
"""
Общий код между сервисами.

Модули:
- models: общие Pydantic-модели ответов
- auth: участник запроса из заголовков шлюза
"""

__all__: list[str] = []

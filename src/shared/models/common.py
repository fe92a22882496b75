# src/shared/models/common.py
"""
Общие модели для всех сервисов.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Стандартный ответ с ошибкой."""

    success: bool = False
    errorKind: str
    message: str
    currentStatus: str | None = None


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded, unhealthy
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    # dependencies: {"postgres": "healthy", "redis": "healthy"}

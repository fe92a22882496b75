"""
Иерархия ошибок домена.
Каждая ошибка знает свой errorKind и HTTP-статус для API-слоя.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Базовая ошибка площадки."""

    error_kind: str = "InternalError"
    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.error_kind

    def to_payload(self) -> dict[str, Any]:
        """Структурированный ответ для клиента."""
        return {
            "success": False,
            "errorKind": self.error_kind,
            "message": self.message,
        }


class InvalidInput(DispatchError):
    """Некорректная форма или значения запроса."""
    error_kind = "InvalidInput"
    status_code = 400


class ValidationError(InvalidInput):
    """Черновик заказа не прошёл валидацию хранилища."""


class InvalidTransition(InvalidInput):
    """Переход статуса не разрешён машиной состояний."""


class InvalidGeometry(DispatchError):
    """Точка не является парой конечных координат."""
    error_kind = "InvalidGeometry"
    status_code = 400


class Unauthorized(DispatchError):
    """Участник не аутентифицирован."""
    error_kind = "Unauthorized"
    status_code = 401


class Forbidden(DispatchError):
    """Тип участника не подходит для операции."""
    error_kind = "Forbidden"
    status_code = 403


class NotFound(DispatchError):
    """Запись не найдена."""
    error_kind = "NotFound"
    status_code = 404


class OrderNotFound(NotFound):
    """Заказ не найден при ответе продавца."""
    error_kind = "OrderNotFound"


class Conflict(DispatchError):
    """
    Условное обновление не применилось: статус уже другой.

    Внутренний сигнал хранилища, наружу не отдаётся.
    """
    error_kind = "Conflict"
    status_code = 409

    def __init__(self, current_status: str, message: str = "") -> None:
        super().__init__(message or f"Текущий статус: {current_status}")
        self.current_status = current_status


class AlreadyResolved(DispatchError):
    """Заказ уже вышел из pending — ответил другой продавец."""
    error_kind = "AlreadyResolved"
    status_code = 409

    def __init__(self, current_status: str) -> None:
        if current_status in ("accepted", "rejected"):
            message = f"Order already {current_status} by another seller"
        else:
            message = f"Order is already {current_status}"
        super().__init__(message)
        self.current_status = current_status

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["currentStatus"] = self.current_status
        return payload

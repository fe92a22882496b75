# src/shared/auth.py
"""
Участник запроса.

Токены проверяет внешний шлюз и передаёт результат в заголовках
X-Principal-Id и X-Principal-Type. Здесь только проверка прав.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from src.common.constants import PrincipalType
from src.common.exceptions import Forbidden, Unauthorized

PRINCIPAL_ID_HEADER = "X-Principal-Id"
PRINCIPAL_TYPE_HEADER = "X-Principal-Type"


@dataclass(frozen=True)
class Principal:
    """Аутентифицированный участник."""
    principal_id: str
    principal_type: PrincipalType


def resolve_principal(principal_id: str | None, principal_type: str | None) -> Principal:
    """
    Собирает участника из значений заголовков.

    Raises:
        Unauthorized: заголовки отсутствуют или тип неизвестен
    """
    principal_id = (principal_id or "").strip()
    if not principal_id or not principal_type:
        raise Unauthorized("Not authorized, no token")

    try:
        kind = PrincipalType(principal_type.strip().lower())
    except ValueError:
        raise Unauthorized(f"Unknown principal type: {principal_type}") from None

    return Principal(principal_id=principal_id, principal_type=kind)


def principal_from_headers(headers: Mapping[str, str]) -> Principal:
    """Участник из заголовков HTTP-запроса или WebSocket-рукопожатия."""
    return resolve_principal(
        headers.get(PRINCIPAL_ID_HEADER),
        headers.get(PRINCIPAL_TYPE_HEADER),
    )


def require_type(principal: Principal, expected: PrincipalType) -> Principal:
    """
    Проверяет тип участника.

    Raises:
        Forbidden: тип не совпадает
    """
    if principal.principal_type != expected:
        raise Forbidden(f"Only {expected.value}s can perform this action")
    return principal


def require_self(principal: Principal, expected: PrincipalType, principal_id: str) -> Principal:
    """
    Проверяет, что участник действует от своего имени.

    Raises:
        Forbidden: другой тип или чужой ID
    """
    require_type(principal, expected)
    if principal.principal_id != principal_id:
        raise Forbidden(f"{expected.value.capitalize()} may only act on their own account")
    return principal

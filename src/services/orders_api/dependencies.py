# src/services/orders_api/dependencies.py
"""
Зависимости FastAPI для Orders API.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from src.common.constants import PrincipalType
from src.core.geo.index import GeoIndex
from src.core.notifications.bus import RedisNotificationBus
from src.core.orders.repository import OrderStore
from src.core.orders.workflow import OrderWorkflow
from src.infra.database import get_db
from src.infra.redis_client import get_redis
from src.shared.auth import (
    PRINCIPAL_ID_HEADER,
    PRINCIPAL_TYPE_HEADER,
    Principal,
    require_type,
    resolve_principal,
)


def get_order_workflow() -> OrderWorkflow:
    redis = get_redis()
    return OrderWorkflow(
        store=OrderStore(get_db()),
        geo_index=GeoIndex(redis),
        bus=RedisNotificationBus(redis),
    )


async def get_principal(
    principal_id: Optional[str] = Header(None, alias=PRINCIPAL_ID_HEADER),
    principal_type: Optional[str] = Header(None, alias=PRINCIPAL_TYPE_HEADER),
) -> Principal:
    """Участник из заголовков шлюза (401 если их нет)."""
    return resolve_principal(principal_id, principal_type)


async def get_buyer(principal: Principal = Depends(get_principal)) -> Principal:
    return require_type(principal, PrincipalType.BUYER)


async def get_seller(principal: Principal = Depends(get_principal)) -> Principal:
    return require_type(principal, PrincipalType.SELLER)

# src/services/orders_api/routes.py
"""
REST маршруты заказов.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from src.common.constants import PrincipalType
from src.core.orders.workflow import OrderWorkflow
from src.services.orders_api.dependencies import (
    get_buyer,
    get_order_workflow,
    get_principal,
    get_seller,
)
from src.services.orders_api.schemas import (
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    RespondRequest,
)
from src.shared.auth import Principal, require_self
from src.shared.models.common import ErrorResponse

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={
        400: {"model": ErrorResponse, "description": "Некорректный запрос"},
        401: {"model": ErrorResponse, "description": "Участник не указан"},
        403: {"model": ErrorResponse, "description": "Недостаточно прав"},
    },
)


@router.post("", response_model=PlaceOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    request: PlaceOrderRequest,
    buyer: Principal = Depends(get_buyer),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> PlaceOrderResponse:
    """Размещает заказ и уведомляет аптеки поблизости."""
    if request.buyer_id is not None:
        require_self(buyer, PrincipalType.BUYER, request.buyer_id)

    order, matched = await workflow.place_order(request.to_draft(buyer.principal_id))
    return PlaceOrderResponse.from_order(order, matched)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    seller: Principal = Depends(get_seller),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> OrderListResponse:
    """Все заказы (для аптек), новые первыми."""
    orders = await workflow.list_orders(limit=limit, offset=offset)
    return OrderListResponse.from_orders(orders)


@router.get("/buyer/{buyer_id}", response_model=OrderListResponse)
async def list_orders_for_buyer(
    buyer_id: str,
    buyer: Principal = Depends(get_buyer),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> OrderListResponse:
    """Заказы покупателя, новые первыми."""
    require_self(buyer, PrincipalType.BUYER, buyer_id)
    orders = await workflow.list_orders_for_buyer(buyer_id)
    return OrderListResponse.from_orders(orders)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse, "description": "Заказ не найден"}},
)
async def get_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> OrderResponse:
    order = await workflow.get_order(order_id)
    return OrderResponse.from_order(order)


@router.patch(
    "/{order_id}/respond",
    response_model=OrderResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Заказ не найден"},
        409: {"model": ErrorResponse, "description": "Заказ уже обработан другой аптекой"},
    },
)
async def respond_to_order(
    order_id: str,
    request: RespondRequest,
    seller: Principal = Depends(get_seller),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> OrderResponse:
    """Ответ аптеки на заказ. Второй и последующие ответы получают 409."""
    order = await workflow.respond_to_order(
        order_id,
        seller.principal_id,
        request.resolve_action(),
    )
    return OrderResponse.from_order(order)

"""
Машина состояний заказа.
"""

from __future__ import annotations

from src.common.constants import OrderStatus


class OrderStateMachine:
    ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
        OrderStatus.PENDING: (OrderStatus.ACCEPTED, OrderStatus.REJECTED),
        OrderStatus.ACCEPTED: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
        OrderStatus.CONFIRMED: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
        OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
        OrderStatus.REJECTED: (),
        OrderStatus.DELIVERED: (),
        OrderStatus.CANCELLED: (),
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = OrderStatus(current_status)
            new = OrderStatus(new_status)
        except ValueError:
            return False
        return new in OrderStateMachine.ALLOWED_TRANSITIONS.get(curr, ())

"""Order lifecycle state machine.

RESERVED -> PICKUPED -> RETURNED -> COMPLETED, with CANCELLED reachable from any
non-cancelled state. Requesting the current status again is always accepted so
repeated updates stay idempotent.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from ..core.errors import ConflictError, ErrorCode
from ..core.clock import to_utc
from ..models.order import Order, OrderStatus


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.RESERVED: frozenset({OrderStatus.PICKUPED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.PICKUPED: frozenset({OrderStatus.RETURNED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}


class InvalidStatusTransition(ConflictError):
    def __init__(self, current: OrderStatus, requested: OrderStatus):
        self.current = OrderStatus(current)
        self.requested = OrderStatus(requested)
        super().__init__(
            ErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change order status from {self.current.value} to {self.requested.value}",
            {
                "current_status": self.current.value,
                "requested_status": self.requested.value,
                "allowed": sorted(s.value for s in allowed_transitions(self.current)),
            },
        )


def allowed_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    current = OrderStatus(current)
    return TRANSITIONS[current] | {current}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return OrderStatus(requested) in allowed_transitions(current)


def next_status(current: OrderStatus, requested: OrderStatus, enforce: bool = True) -> OrderStatus:
    """Return the status an order moves to, or raise InvalidStatusTransition"""
    requested = OrderStatus(requested)
    if enforce and not can_transition(current, requested):
        raise InvalidStatusTransition(current, requested)
    return requested


def status_timestamps(
    order: Order,
    new_status: OrderStatus,
    now: datetime,
    picked_up_at: Optional[datetime] = None,
    returned_at: Optional[datetime] = None,
) -> Dict[str, datetime]:
    """Lifecycle timestamps to stamp when an order enters ``new_status``.

    A timestamp already on the order is kept as is; otherwise the client-supplied
    value wins over ``now``.
    """
    changes = {}
    if new_status == OrderStatus.PICKUPED and order.picked_up_at is None:
        changes["picked_up_at"] = to_utc(picked_up_at) if picked_up_at else now
    if new_status == OrderStatus.RETURNED and order.returned_at is None:
        changes["returned_at"] = to_utc(returned_at) if returned_at else now
    return changes

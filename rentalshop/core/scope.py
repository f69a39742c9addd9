"""Tenant scoping: which orders a user may see or touch.

Every order endpoint derives its filter from ``build_order_scope`` rather than
branching on the role itself.
"""
from dataclasses import dataclass
from typing import Any, Optional

from ..models.order import Order
from ..models.user import User, UserRole


@dataclass(frozen=True)
class OrderScope:
    merchant_id: Optional[int] = None
    outlet_id: Optional[int] = None
    deny_all: bool = False

    @property
    def is_unrestricted(self) -> bool:
        return not self.deny_all and self.merchant_id is None and self.outlet_id is None

    @property
    def cache_token(self) -> str:
        if self.deny_all:
            return "none"
        return f"m{self.merchant_id or '*'}:o{self.outlet_id or '*'}"

    def apply(self, query: Any) -> Any:
        """Add the scope filters to a PostgREST query builder"""
        if self.merchant_id is not None:
            query = query.eq("merchant_id", self.merchant_id)
        if self.outlet_id is not None:
            query = query.eq("outlet_id", self.outlet_id)
        return query

    def allows(self, order: Order) -> bool:
        if self.deny_all:
            return False
        if self.merchant_id is not None and order.merchant_id != self.merchant_id:
            return False
        if self.outlet_id is not None and order.outlet_id != self.outlet_id:
            return False
        return True


DENY_ALL = OrderScope(deny_all=True)


def build_order_scope(user: User) -> OrderScope:
    if user.role == UserRole.ADMIN:
        return OrderScope()

    if user.role == UserRole.MERCHANT and user.merchant_id is not None:
        return OrderScope(merchant_id=user.merchant_id)

    if user.role in (UserRole.OUTLET_ADMIN, UserRole.OUTLET_STAFF) and user.outlet_id is not None:
        return OrderScope(merchant_id=user.merchant_id, outlet_id=user.outlet_id)

    # Users not assigned to a merchant/outlet see nothing
    return DENY_ALL


def can_view_financials(user: User) -> bool:
    return user.role != UserRole.OUTLET_STAFF

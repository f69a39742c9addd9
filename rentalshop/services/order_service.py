import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from ..config import settings
from ..core.cache import CacheKeys, invalidate_order_cache
from ..core.clock import Clock
from ..core.errors import ErrorCode, ForbiddenError, NotFoundError
from ..core.responses import jsonable
from ..core.scope import OrderScope, build_order_scope
from ..models.order import Order, OrderStatus, PaymentStatus
from ..models.user import User
from ..repositories.audit import AuditLogRepository
from ..repositories.orders import OrderRepository
from ..schemas.orders import OrderStatusUpdate
from ..services.redis import RedisClient
from .order_status import InvalidStatusTransition, next_status, status_timestamps
from .revenue import round_currency

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Order cancelled by user"
SECONDS_PER_DAY = 24 * 60 * 60
ORDER_CACHE_SECONDS = 60


def _days_between(start: datetime, end: datetime) -> int:
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def _sum_payments(order: Order, status: PaymentStatus) -> Decimal:
    return sum((p.amount for p in order.payments if p.status == status), Decimal("0"))


def build_order_detail(order: Order, now: datetime) -> Dict[str, Any]:
    """Order fields plus the computed values the order detail screen shows"""
    customer = order.customer or {}
    full_name = f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()

    is_overdue = (
        order.status == OrderStatus.PICKUPED
        and order.return_plan_at is not None
        and now > order.return_plan_at
    )
    days_overdue = 0
    if order.status == OrderStatus.PICKUPED and order.return_plan_at is not None:
        days_overdue = max(0, _days_between(order.return_plan_at, now))

    rental_duration = None
    if order.is_rental and order.pickup_plan_at and order.return_plan_at:
        rental_duration = _days_between(order.pickup_plan_at, order.return_plan_at)

    total_paid = _sum_payments(order, PaymentStatus.COMPLETED)

    detail = order.model_dump()
    detail.update({
        "customer_full_name": full_name or "Guest Customer",
        "customer_contact": customer.get("phone") or customer.get("email") or "No contact info",
        "total_items": sum(item.quantity for item in order.order_items),
        "is_rental": order.is_rental,
        "is_overdue": is_overdue,
        "days_overdue": days_overdue,
        "rental_duration": rental_duration,
        "payment_summary": {
            "total_paid": round_currency(total_paid),
            "total_pending": round_currency(_sum_payments(order, PaymentStatus.PENDING)),
            "total_failed": round_currency(_sum_payments(order, PaymentStatus.FAILED)),
            "remaining_balance": round_currency(order.total_amount - total_paid),
        },
    })
    return detail


class OrderService:
    """Reads and lifecycle updates of a single order"""

    def __init__(
        self,
        repository: OrderRepository,
        audit: AuditLogRepository,
        cache: RedisClient,
        clock: Clock,
        enforce_transitions: Optional[bool] = None,
    ):
        self.repository = repository
        self.audit = audit
        self.cache = cache
        self.clock = clock
        if enforce_transitions is None:
            enforce_transitions = settings.ENFORCE_STATUS_TRANSITIONS
        self.enforce_transitions = enforce_transitions

    async def _load(self, order_id: int) -> Order:
        order = await self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError(ErrorCode.ORDER_NOT_FOUND)
        return order

    @staticmethod
    def _check_update_scope(scope: OrderScope, order: Order):
        if scope.allows(order):
            return
        if scope.deny_all:
            raise ForbiddenError(ErrorCode.FORBIDDEN)
        if scope.merchant_id is not None and order.merchant_id != scope.merchant_id:
            raise ForbiddenError(ErrorCode.CANNOT_UPDATE_ORDER_FROM_OTHER_MERCHANT)
        raise ForbiddenError(ErrorCode.CANNOT_UPDATE_ORDER_FROM_OTHER_OUTLET)

    async def _load_cached(self, order_id: int) -> Order:
        cache_key = CacheKeys.ORDER_DETAIL.format(order_id=order_id)
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return Order.model_validate(cached)

        order = await self._load(order_id)
        self.cache.set(cache_key, jsonable(order.model_dump()), ORDER_CACHE_SECONDS)
        return order

    async def get_order_detail(self, order_id: int, user: User) -> Dict[str, Any]:
        order = await self._load_cached(order_id)
        if not build_order_scope(user).allows(order):
            raise ForbiddenError(ErrorCode.CANNOT_ACCESS_ORDER_FROM_OTHER_OUTLET)
        return build_order_detail(order, self.clock.now())

    async def update_status(
        self,
        order_id: int,
        update: OrderStatusUpdate,
        user: User,
        ip_address: Optional[str] = None,
    ) -> Order:
        order = await self._load(order_id)
        self._check_update_scope(build_order_scope(user), order)

        try:
            new_status = next_status(order.status, update.status, enforce=self.enforce_transitions)
        except InvalidStatusTransition:
            logger.warning(
                "Rejected status change for order %s: %s -> %s",
                order.id, order.status.value, update.status.value,
            )
            raise

        now = self.clock.now()
        changes: Dict[str, Any] = {"status": new_status}
        changes.update(status_timestamps(order, new_status, now, update.picked_up_at, update.returned_at))
        changes.update(update.provided_fields())
        changes["updated_at"] = now

        updated = await self.repository.update(order.id, changes)
        if updated is None:
            raise NotFoundError(ErrorCode.ORDER_NOT_FOUND)

        invalidate_order_cache(self.cache, order.id)
        await self.audit.log(
            user,
            "UPDATE_STATUS",
            "order",
            order.id,
            old_values={"status": order.status.value},
            new_values={"status": new_status.value},
            ip_address=ip_address,
        )
        logger.info("Order %s status %s -> %s", order.id, order.status.value, new_status.value)

        return updated

    async def cancel_order(
        self,
        order_id: int,
        user: User,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Order:
        update = OrderStatusUpdate(status=OrderStatus.CANCELLED, notes=reason or DEFAULT_CANCEL_REASON)
        return await self.update_status(order_id, update, user, ip_address)

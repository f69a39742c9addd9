import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ..config import settings
from ..core.cache import CacheKeys
from ..core.clock import Clock, business_date, day_bounds, month_bounds
from ..core.errors import ErrorCode, ValidationError
from ..core.responses import jsonable
from ..core.scope import OrderScope
from ..models.order import Order, OrderStatus
from ..repositories.orders import OrderRepository
from ..services.redis import RedisClient
from .revenue import (
    ZERO,
    calculate_future_income_batch,
    calculate_growth,
    calculate_period_revenue_batch,
    order_revenue,
    round_currency,
    round_percent,
)

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366
GROUP_BY_OPTIONS = ("month", "day")

STATUS_COUNT_KEYS = {
    OrderStatus.RESERVED: "reserved",
    OrderStatus.PICKUPED: "pickup",
    OrderStatus.RETURNED: "returned",
    OrderStatus.COMPLETED: "completed",
    OrderStatus.CANCELLED: "cancelled",
}


def empty_dashboard() -> Dict[str, Any]:
    return {
        "overview": {
            "total_orders": 0,
            "total_revenue": round_currency(ZERO),
            "active_orders": 0,
            "completion_rate": round_percent(ZERO),
        },
        "order_status_counts": {key: 0 for key in STATUS_COUNT_KEYS.values()},
        "today_orders": [],
    }


def summarize_order(order: Order) -> Dict[str, Any]:
    customer = order.customer or {}
    name = f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()
    return {
        "id": order.id,
        "order_number": order.order_number,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "total_amount": round_currency(order.total_amount),
        "customer_name": name or "Guest Customer",
        "outlet_name": (order.outlet or {}).get("name"),
        "total_items": sum(item.quantity for item in order.order_items),
        "created_at": order.created_at,
    }


def validate_window(start: Optional[datetime], end: Optional[datetime], required: bool = False):
    if (start is None) != (end is None):
        raise ValidationError(ErrorCode.INVALID_QUERY, "Both startDate and endDate must be provided")
    if required and start is None:
        raise ValidationError(ErrorCode.INVALID_QUERY, "startDate and endDate are required")
    if start is None:
        return
    if start > end:
        raise ValidationError(ErrorCode.INVALID_DATE_RANGE, "startDate must be before endDate")
    if end - start > timedelta(days=MAX_RANGE_DAYS):
        raise ValidationError(
            ErrorCode.INVALID_DATE_RANGE, f"Date range cannot exceed {MAX_RANGE_DAYS} days"
        )


def income_buckets(start: datetime, end: datetime, group_by: str) -> List[Tuple[str, int, datetime, datetime]]:
    """(label, year, bucket_start, bucket_end) per business month or day, clipped to the window"""
    buckets = []
    first, last = business_date(start), business_date(end)

    if group_by == "day":
        day = first
        while day <= last:
            lower, upper = day_bounds(day)
            buckets.append((day.isoformat(), day.year, max(lower, start), min(upper, end)))
            day += timedelta(days=1)
        return buckets

    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        lower, upper = month_bounds(year, month)
        label = date(year, month, 1).strftime("%b")
        buckets.append((label, year, max(lower, start), min(upper, end)))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return buckets


class AnalyticsService:
    """Dashboard, growth and income figures for the orders a scope can see"""

    def __init__(self, repository: OrderRepository, cache: RedisClient, clock: Clock):
        self.repository = repository
        self.cache = cache
        self.clock = clock

    async def dashboard(self, scope: OrderScope) -> Dict[str, Any]:
        if scope.deny_all:
            return empty_dashboard()

        cache_key = CacheKeys.DASHBOARD_STATS.format(scope=scope.cache_token)
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return cached

        today_start, today_end = day_bounds(business_date(self.clock.now()))
        statuses = list(STATUS_COUNT_KEYS)

        total, revenue_rows, today, *status_counts = await asyncio.gather(
            self.repository.count(scope),
            self.repository.list_for_revenue(scope),
            self.repository.list_created_between(scope, today_start, today_end),
            *(self.repository.count(scope, status) for status in statuses),
        )

        counts = dict(zip(statuses, status_counts))
        active = counts[OrderStatus.PICKUPED]
        completion_rate = (total - active) / total * 100 if total else 0
        total_revenue = sum((order_revenue(order) for order in revenue_rows), ZERO)

        payload = {
            "overview": {
                "total_orders": total,
                "total_revenue": round_currency(total_revenue),
                "active_orders": active,
                "completion_rate": round_percent(completion_rate),
            },
            "order_status_counts": {STATUS_COUNT_KEYS[s]: counts[s] for s in statuses},
            "today_orders": [summarize_order(order) for order in today],
        }

        # Stored in its JSON form so cached and fresh responses hash to the same ETag
        payload = jsonable(payload)
        self.cache.set(cache_key, payload, settings.DASHBOARD_CACHE_SECONDS)
        return payload

    async def growth_metrics(
        self, scope: OrderScope, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        validate_window(start, end)
        if start is None:
            end = self.clock.now()
            today = business_date(end)
            start, _ = month_bounds(today.year, today.month)

        # Previous window stops just short of start so a boundary order counts once
        previous_end = start - timedelta(microseconds=1)
        previous_start = start - (end - start)

        if scope.deny_all:
            current_orders = previous_orders = 0
            current_revenue = previous_revenue = ZERO
        else:
            current_orders, previous_orders, orders = await asyncio.gather(
                self.repository.count_created_between(scope, start, end),
                self.repository.count_created_between(scope, previous_start, previous_end),
                self.repository.list_touching_window(scope, previous_start, end),
            )
            current_revenue = calculate_period_revenue_batch(orders, start, end)
            previous_revenue = calculate_period_revenue_batch(orders, previous_start, previous_end)

        return {
            "current_period": {
                "start": start,
                "end": end,
                "orders": current_orders,
                "revenue": round_currency(current_revenue),
            },
            "previous_period": {
                "start": previous_start,
                "end": previous_end,
                "orders": previous_orders,
                "revenue": round_currency(previous_revenue),
            },
            "growth": {
                "orders": round_percent(calculate_growth(current_orders, previous_orders)),
                "revenue": round_percent(calculate_growth(current_revenue, previous_revenue)),
            },
        }

    async def income(
        self,
        scope: OrderScope,
        start: Optional[datetime],
        end: Optional[datetime],
        group_by: str = "month",
    ) -> Dict[str, Any]:
        validate_window(start, end, required=True)
        if group_by not in GROUP_BY_OPTIONS:
            raise ValidationError(ErrorCode.INVALID_QUERY, "groupBy must be 'month' or 'day'")

        orders = [] if scope.deny_all else await self.repository.list_touching_window(scope, start, end)
        now = self.clock.now()

        buckets = []
        for label, year, lower, upper in income_buckets(start, end, group_by):
            created = [o for o in orders if o.created_at is not None and lower <= o.created_at <= upper]
            buckets.append({
                "label": label,
                "year": year,
                "real_income": round_currency(calculate_period_revenue_batch(orders, lower, upper)),
                "future_income": round_currency(calculate_future_income_batch(orders, lower, upper, now)),
                "order_count": len(created),
            })

        logger.debug("Income report with %d buckets over %d orders", len(buckets), len(orders))
        return {"group_by": group_by, "start": start, "end": end, "buckets": buckets}


def hide_financials(report: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of an analytics report with revenue figures replaced by None"""
    report = jsonable(report)
    if "overview" in report:
        report["overview"]["total_revenue"] = None
    for period in ("current_period", "previous_period"):
        if period in report:
            report[period]["revenue"] = None
    if "growth" in report:
        report["growth"]["revenue"] = None
    for bucket in report.get("buckets", []):
        bucket["real_income"] = None
        bucket["future_income"] = None
    return report

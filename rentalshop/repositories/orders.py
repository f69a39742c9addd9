from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from supabase import Client

from ..core.scope import OrderScope
from ..database import get_supabase_admin
from ..models.order import Order, OrderStatus

ORDER_DETAIL_COLUMNS = (
    "*, order_items(*), payments(*), "
    "customer:customers(first_name, last_name, phone, email), outlet:outlets(name)"
)
ORDER_SUMMARY_COLUMNS = (
    "*, order_items(product_name, quantity), "
    "customer:customers(first_name, last_name), outlet:outlets(name)"
)
REVENUE_COLUMNS = (
    "id, order_type, status, total_amount, deposit_amount, security_deposit, damage_fee, "
    "created_at, picked_up_at, returned_at, pickup_plan_at, return_plan_at, merchant_id, outlet_id"
)

TRACKED_STATUSES = [s.value for s in OrderStatus]
WINDOW_COLUMNS = ("created_at", "picked_up_at", "returned_at", "pickup_plan_at", "return_plan_at")

# At or below the PostgREST max_rows cap, so a short page means the end
PAGE_SIZE = 1000


def to_db_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def serialize_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    row = {}
    for key, value in changes.items():
        if isinstance(value, datetime):
            value = to_db_timestamp(value)
        elif isinstance(value, Enum):
            value = value.value
        elif isinstance(value, Decimal):
            value = str(value)
        row[key] = value
    return row


class OrderRepository:
    """Orders table access through PostgREST"""

    def __init__(self, client: Client):
        self.client = client

    def _orders(self, columns: str, count: Optional[str] = None):
        if count:
            return self.client.table("orders").select(columns, count=count)
        return self.client.table("orders").select(columns)

    async def _fetch_all(self, build_query) -> List[dict]:
        """Run a select page by page; ``build_query`` returns a fresh builder each call"""
        rows = []
        offset = 0
        while True:
            query = build_query().order("id").range(offset, offset + PAGE_SIZE - 1)
            result = await run_in_threadpool(query.execute)
            rows.extend(result.data)
            if len(result.data) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        query = self._orders(ORDER_DETAIL_COLUMNS).eq("id", order_id).limit(1)
        result = await run_in_threadpool(query.execute)
        if not result.data:
            return None
        return Order.model_validate(result.data[0])

    async def update(self, order_id: int, changes: Dict[str, Any]) -> Optional[Order]:
        query = self.client.table("orders").update(serialize_changes(changes)).eq("id", order_id)
        result = await run_in_threadpool(query.execute)
        if not result.data:
            return None
        return await self.get_by_id(order_id)

    async def count(self, scope: OrderScope, status: Optional[OrderStatus] = None) -> int:
        query = scope.apply(self._orders("id", count="exact"))
        if status is None:
            query = query.in_("status", TRACKED_STATUSES)
        else:
            query = query.eq("status", OrderStatus(status).value)
        result = await run_in_threadpool(query.limit(1).execute)
        return result.count or 0

    async def list_for_revenue(self, scope: OrderScope) -> List[Order]:
        rows = await self._fetch_all(
            lambda: scope.apply(self._orders(REVENUE_COLUMNS)).in_("status", TRACKED_STATUSES)
        )
        return [Order.model_validate(row) for row in rows]

    async def list_created_between(self, scope: OrderScope, start: datetime, end: datetime) -> List[Order]:
        query = (
            scope.apply(self._orders(ORDER_SUMMARY_COLUMNS))
            .gte("created_at", to_db_timestamp(start))
            .lte("created_at", to_db_timestamp(end))
            .order("created_at", desc=True)
        )
        result = await run_in_threadpool(query.execute)
        return [Order.model_validate(row) for row in result.data]

    async def count_created_between(self, scope: OrderScope, start: datetime, end: datetime) -> int:
        query = (
            scope.apply(self._orders("id", count="exact"))
            .in_("status", TRACKED_STATUSES)
            .gte("created_at", to_db_timestamp(start))
            .lte("created_at", to_db_timestamp(end))
        )
        result = await run_in_threadpool(query.limit(1).execute)
        return result.count or 0

    async def list_touching_window(self, scope: OrderScope, start: datetime, end: datetime) -> List[Order]:
        """Orders with any lifecycle or planned timestamp inside [start, end]"""
        lower, upper = to_db_timestamp(start), to_db_timestamp(end)
        window = ",".join(
            f"and({column}.gte.{lower},{column}.lte.{upper})" for column in WINDOW_COLUMNS
        )
        rows = await self._fetch_all(lambda: scope.apply(self._orders(REVENUE_COLUMNS)).or_(window))
        return [Order.model_validate(row) for row in rows]


def get_order_repository() -> OrderRepository:
    return OrderRepository(get_supabase_admin())

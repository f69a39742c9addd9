import fnmatch
import os
from datetime import datetime, timezone

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from rentalshop.main import app
from rentalshop.core.clock import FixedClock, get_clock
from rentalshop.core.permissions import get_current_user
from rentalshop.models.order import Order
from rentalshop.models.user import User, UserRole
from rentalshop.repositories.audit import get_audit_repository
from rentalshop.repositories.orders import WINDOW_COLUMNS, get_order_repository
from rentalshop.services.redis import get_cache


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeOrderRepository:
    """In-memory stand-in for OrderRepository; scope filtering via OrderScope.allows"""

    def __init__(self, orders):
        self.orders = {order.id: order for order in orders}

    def _visible(self, scope):
        return [o.model_copy(deep=True) for o in self.orders.values() if scope.allows(o)]

    async def get_by_id(self, order_id):
        order = self.orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def update(self, order_id, changes):
        if order_id not in self.orders:
            return None
        self.orders[order_id] = self.orders[order_id].model_copy(update=changes)
        return await self.get_by_id(order_id)

    async def count(self, scope, status=None):
        return len([o for o in self._visible(scope) if status is None or o.status == status])

    async def list_for_revenue(self, scope):
        return self._visible(scope)

    async def list_created_between(self, scope, start, end):
        orders = [o for o in self._visible(scope) if o.created_at and start <= o.created_at <= end]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def count_created_between(self, scope, start, end):
        return len(await self.list_created_between(scope, start, end))

    async def list_touching_window(self, scope, start, end):
        def touches(order):
            for column in WINDOW_COLUMNS:
                value = getattr(order, column)
                if value is not None and start <= value <= end:
                    return True
            return False

        return [o for o in self._visible(scope) if touches(o)]


class FakeAuditRepository:
    def __init__(self):
        self.entries = []

    async def log(self, user, action, entity_type, entity_id=None, **kwargs):
        self.entries.append({
            "user_id": user.id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            **kwargs,
        })


class FakeCache:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, expire=None):
        self.store[key] = value

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    def delete_pattern(self, pattern):
        for key in fnmatch.filter(list(self.store), pattern):
            del self.store[key]


def make_order(**fields) -> Order:
    row = {
        "order_type": "RENT",
        "status": "RESERVED",
        "merchant_id": 1,
        "outlet_id": 10,
        "total_amount": "100.00",
        "deposit_amount": "20.00",
        "security_deposit": "10.00",
        "damage_fee": "0",
    }
    row.update(fields)
    return Order.model_validate(row)


USERS = {
    "admin": User(id=1, email="admin@shop.test", role=UserRole.ADMIN),
    "merchant": User(id=2, email="owner@shop.test", role=UserRole.MERCHANT, merchant_id=1),
    "outlet_admin": User(id=3, email="manager@shop.test", role=UserRole.OUTLET_ADMIN, merchant_id=1, outlet_id=10),
    "staff": User(id=4, email="staff@shop.test", role=UserRole.OUTLET_STAFF, merchant_id=1, outlet_id=10),
    "unassigned": User(id=5, email="new@shop.test", role=UserRole.OUTLET_STAFF),
}


@pytest.fixture
def orders():
    return [
        make_order(
            id=1,
            order_number="ORD-010-0001",
            created_at="2024-03-15T09:00:00Z",
            pickup_plan_at="2024-03-20T10:00:00Z",
            return_plan_at="2024-03-25T10:00:00Z",
            customer={"first_name": "Ada", "last_name": "Obi", "phone": "0800000001"},
        ),
        make_order(
            id=2,
            order_number="ORD-010-0002",
            status="PICKUPED",
            created_at="2024-03-01T08:00:00Z",
            pickup_plan_at="2024-03-10T10:00:00Z",
            return_plan_at="2024-03-12T10:00:00Z",
            picked_up_at="2024-03-10T10:30:00Z",
            order_items=[
                {"id": 1, "product_name": "Evening gown", "quantity": 2, "unit_price": "40", "total_price": "80"},
                {"id": 2, "product_name": "Clutch", "quantity": 1, "unit_price": "20", "total_price": "20"},
            ],
            payments=[
                {"id": 1, "amount": "30.00", "status": "COMPLETED", "method": "CASH"},
                {"id": 2, "amount": "20.00", "status": "PENDING", "method": "CARD"},
                {"id": 3, "amount": "15.00", "status": "FAILED", "method": "CARD"},
            ],
            customer={"first_name": "Bola", "last_name": "Ade", "email": "bola@mail.test"},
        ),
        make_order(
            id=3,
            order_number="ORD-011-0001",
            order_type="SALE",
            status="COMPLETED",
            outlet_id=11,
            total_amount="50.00",
            deposit_amount="0",
            security_deposit="0",
            created_at="2024-03-15T10:00:00Z",
        ),
        make_order(
            id=4,
            order_number="ORD-020-0001",
            status="RETURNED",
            merchant_id=2,
            outlet_id=20,
            damage_fee="5.00",
            created_at="2024-02-19T08:00:00Z",
            picked_up_at="2024-02-20T09:00:00Z",
            returned_at="2024-02-20T18:00:00Z",
        ),
    ]


@pytest.fixture
def order_repository(orders):
    return FakeOrderRepository(orders)


@pytest.fixture
def audit_repository():
    return FakeAuditRepository()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def current_user():
    return {"user": USERS["admin"]}


@pytest.fixture
def login_as(current_user):
    def _login(name):
        current_user["user"] = USERS[name]
        return current_user["user"]

    return _login


@pytest_asyncio.fixture
async def client(order_repository, audit_repository, cache, clock, current_user):
    app.dependency_overrides[get_order_repository] = lambda: order_repository
    app.dependency_overrides[get_audit_repository] = lambda: audit_repository
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_user] = lambda: current_user["user"]

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

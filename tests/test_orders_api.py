import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_order_detail(client: AsyncClient):
    response = await client.get("/api/orders/2")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]

    assert data["id"] == 2
    assert data["customer_full_name"] == "Bola Ade"
    assert data["total_items"] == 3
    assert data["is_rental"] is True
    assert data["is_overdue"] is True
    assert data["days_overdue"] == 4
    assert data["rental_duration"] == 2
    assert data["payment_summary"] == {
        "total_paid": 30.0,
        "total_pending": 20.0,
        "total_failed": 15.0,
        "remaining_balance": 70.0,
    }


@pytest.mark.asyncio
async def test_get_order_without_customer_is_guest(client: AsyncClient):
    response = await client.get("/api/orders/3")

    data = response.json()["data"]
    assert data["customer_full_name"] == "Guest Customer"
    assert data["is_rental"] is False
    assert data["is_overdue"] is False
    assert data["rental_duration"] is None


@pytest.mark.asyncio
async def test_get_order_invalid_id(client: AsyncClient):
    response = await client.get("/api/orders/abc")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "INVALID_ORDER_ID_FORMAT"


@pytest.mark.asyncio
async def test_get_order_not_found(client: AsyncClient):
    response = await client.get("/api/orders/999")

    assert response.status_code == 404
    assert response.json()["code"] == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_get_order_from_other_outlet_forbidden(client: AsyncClient, login_as):
    login_as("outlet_admin")

    response = await client.get("/api/orders/3")

    assert response.status_code == 403
    assert response.json()["code"] == "CANNOT_ACCESS_ORDER_FROM_OTHER_OUTLET"


@pytest.mark.asyncio
async def test_pickup_stamps_picked_up_at(client: AsyncClient, audit_repository):
    response = await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "ORDER_STATUS_UPDATED"
    assert body["data"]["status"] == "PICKUPED"
    assert body["data"]["picked_up_at"] == "2024-03-15T12:00:00+00:00"

    assert len(audit_repository.entries) == 1
    entry = audit_repository.entries[0]
    assert entry["action"] == "UPDATE_STATUS"
    assert entry["entity_id"] == 1
    assert entry["old_values"] == {"status": "RESERVED"}
    assert entry["new_values"] == {"status": "PICKUPED"}


@pytest.mark.asyncio
async def test_repeated_pickup_keeps_first_timestamp(client: AsyncClient, clock):
    first = await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})
    clock.advance(hours=2)
    second = await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})

    assert second.status_code == 200
    assert second.json()["data"]["picked_up_at"] == first.json()["data"]["picked_up_at"]
    assert second.json()["data"]["updated_at"] == "2024-03-15T14:00:00+00:00"


@pytest.mark.asyncio
async def test_pickup_uses_client_timestamp(client: AsyncClient):
    response = await client.patch(
        "/api/orders/1/status",
        json={"status": "PICKUPED", "pickedUpAt": "2024-03-15T08:30:00Z", "pickupNotes": "ID card held"},
    )

    data = response.json()["data"]
    assert data["picked_up_at"] == "2024-03-15T08:30:00+00:00"
    assert data["pickup_notes"] == "ID card held"


@pytest.mark.asyncio
async def test_return_stamps_returned_at_and_notes(client: AsyncClient, order_repository):
    response = await client.patch(
        "/api/orders/2/status",
        json={"status": "RETURNED", "return_notes": "Small stain", "collateralReturned": True},
    )

    assert response.status_code == 200
    stored = order_repository.orders[2]
    assert stored.returned_at.isoformat() == "2024-03-15T12:00:00+00:00"
    assert stored.picked_up_at.isoformat() == "2024-03-10T10:30:00+00:00"
    assert stored.return_notes == "Small stain"
    assert stored.collateral_returned is True


@pytest.mark.asyncio
async def test_update_invalid_status_value(client: AsyncClient):
    response = await client.patch("/api/orders/1/status", json={"status": "SHIPPED"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_PAYLOAD"
    assert "details" in body


@pytest.mark.asyncio
async def test_update_disallowed_transition(client: AsyncClient, order_repository):
    response = await client.patch("/api/orders/4/status", json={"status": "RESERVED"})

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "INVALID_STATUS_TRANSITION"
    assert body["details"]["current_status"] == "RETURNED"
    assert body["details"]["allowed"] == ["CANCELLED", "COMPLETED", "RETURNED"]
    assert order_repository.orders[4].status.value == "RETURNED"


@pytest.mark.asyncio
async def test_update_order_from_other_outlet(client: AsyncClient, login_as):
    login_as("outlet_admin")

    response = await client.patch("/api/orders/3/status", json={"status": "CANCELLED"})

    assert response.status_code == 403
    assert response.json()["code"] == "CANNOT_UPDATE_ORDER_FROM_OTHER_OUTLET"


@pytest.mark.asyncio
async def test_update_order_from_other_merchant(client: AsyncClient, login_as):
    login_as("merchant")

    response = await client.patch("/api/orders/4/status", json={"status": "COMPLETED"})

    assert response.status_code == 403
    assert response.json()["code"] == "CANNOT_UPDATE_ORDER_FROM_OTHER_MERCHANT"


@pytest.mark.asyncio
async def test_unassigned_user_cannot_update(client: AsyncClient, login_as):
    login_as("unassigned")

    response = await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_status_update_invalidates_dashboard_cache(client: AsyncClient, cache):
    await client.get("/api/analytics/dashboard")
    assert any(key.startswith("dashboard:stats:") for key in cache.store)

    await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})

    assert not any(key.startswith("dashboard:stats:") for key in cache.store)


@pytest.mark.asyncio
async def test_cancel_order_default_reason(client: AsyncClient, order_repository):
    response = await client.delete("/api/orders/1")

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "ORDER_CANCELLED_SUCCESS"
    assert body["data"]["status"] == "CANCELLED"
    assert order_repository.orders[1].notes == "Order cancelled by user"


@pytest.mark.asyncio
async def test_cancel_order_with_reason(client: AsyncClient, order_repository):
    response = await client.request("DELETE", "/api/orders/2", json={"reason": "Customer changed plans"})

    assert response.status_code == 200
    assert order_repository.orders[2].notes == "Customer changed plans"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


@pytest.mark.asyncio
async def test_order_detail_cache_dropped_on_update(client: AsyncClient, cache):
    await client.get("/api/orders/1")
    assert "order:1" in cache.store

    await client.patch("/api/orders/1/status", json={"status": "PICKUPED"})
    assert "order:1" not in cache.store

    response = await client.get("/api/orders/1")
    assert response.json()["data"]["status"] == "PICKUPED"

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request

from ..core.clock import Clock, get_clock
from ..core.errors import ErrorCode, ValidationError
from ..core.permissions import require_any_role
from ..core.responses import ResponseBuilder, jsonable
from ..models.user import User
from ..repositories.audit import AuditLogRepository, get_audit_repository
from ..repositories.orders import OrderRepository, get_order_repository
from ..schemas.orders import OrderCancel, OrderStatusUpdate
from ..services.order_service import OrderService
from ..services.redis import RedisClient, get_cache

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def get_order_service(
    repository: OrderRepository = Depends(get_order_repository),
    audit: AuditLogRepository = Depends(get_audit_repository),
    cache: RedisClient = Depends(get_cache),
    clock: Clock = Depends(get_clock),
) -> OrderService:
    return OrderService(repository, audit, cache, clock)


def parse_order_id(order_id: str) -> int:
    if not order_id.isdigit() or int(order_id) <= 0:
        raise ValidationError(ErrorCode.INVALID_ORDER_ID_FORMAT)
    return int(order_id)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: User = Depends(require_any_role),
    service: OrderService = Depends(get_order_service),
):
    """Order with items, payments and computed detail fields"""
    detail = await service.get_order_detail(parse_order_id(order_id), current_user)
    return ResponseBuilder.success(jsonable(detail), code="ORDER_RETRIEVED_SUCCESS")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    request: Request,
    current_user: User = Depends(require_any_role),
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        parse_order_id(order_id), update, current_user, client_ip(request)
    )
    return ResponseBuilder.success(
        jsonable(order.model_dump()),
        code="ORDER_STATUS_UPDATED",
        message=f"Order status updated to {order.status.value}",
    )


@router.delete("/{order_id}")
async def cancel_order(
    order_id: str,
    request: Request,
    body: Optional[OrderCancel] = Body(None),
    current_user: User = Depends(require_any_role),
    service: OrderService = Depends(get_order_service),
):
    """Cancel an order (soft delete)"""
    order = await service.cancel_order(
        parse_order_id(order_id),
        current_user,
        reason=body.reason if body else None,
        ip_address=client_ip(request),
    )
    return ResponseBuilder.success(
        jsonable(order.model_dump()),
        code="ORDER_CANCELLED_SUCCESS",
        message="Order cancelled successfully",
    )

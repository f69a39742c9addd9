from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..core.clock import Clock, day_bounds, get_clock, parse_business_timestamp
from ..core.errors import ErrorCode, ValidationError
from ..core.permissions import require_any_role
from ..core.responses import ResponseBuilder, etag_response
from ..core.scope import build_order_scope, can_view_financials
from ..models.user import User
from ..repositories.orders import OrderRepository, get_order_repository
from ..services.analytics_service import AnalyticsService, hide_financials
from ..services.redis import RedisClient, get_cache

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def get_analytics_service(
    repository: OrderRepository = Depends(get_order_repository),
    cache: RedisClient = Depends(get_cache),
    clock: Clock = Depends(get_clock),
) -> AnalyticsService:
    return AnalyticsService(repository, cache, clock)


def parse_date_param(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Accepts an ISO timestamp or a bare YYYY-MM-DD; values without an offset are business-timezone wall time"""
    if value is None or not value.strip():
        return None
    try:
        if len(value.strip()) == 10:
            start, end = day_bounds(date.fromisoformat(value.strip()))
            return end if end_of_day else start
        return parse_business_timestamp(value)
    except ValueError:
        raise ValidationError(ErrorCode.INVALID_DATE_FORMAT, f"Invalid date: {value}")


def _respond(request: Request, user: User, report: dict):
    scope = build_order_scope(user)
    if not can_view_financials(user):
        report = hide_financials(report)
    code = ErrorCode.NO_DATA_AVAILABLE if scope.deny_all else None
    return etag_response(request, ResponseBuilder.success(report, code=code))


@router.get("/dashboard")
async def get_dashboard(
    request: Request,
    current_user: User = Depends(require_any_role),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Order counts, revenue and today's orders for the caller's scope"""
    report = await service.dashboard(build_order_scope(current_user))
    return _respond(request, current_user, report)


@router.get("/growth-metrics")
async def get_growth_metrics(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    current_user: User = Depends(require_any_role),
    service: AnalyticsService = Depends(get_analytics_service),
):
    report = await service.growth_metrics(
        build_order_scope(current_user),
        parse_date_param(start_date),
        parse_date_param(end_date, end_of_day=True),
    )
    return _respond(request, current_user, report)


@router.get("/income")
async def get_income(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    group_by: str = Query("month", alias="groupBy"),
    current_user: User = Depends(require_any_role),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Real and future income per month or day"""
    report = await service.income(
        build_order_scope(current_user),
        parse_date_param(start_date),
        parse_date_param(end_date, end_of_day=True),
        group_by,
    )
    return _respond(request, current_user, report)

"""Revenue recognition for rental and sale orders.

Each order contributes revenue according to its type and current status:

* SALE                       total_amount
* RENT / RESERVED            deposit_amount
* RENT / PICKUPED            total_amount - deposit_amount + security_deposit
* RENT / RETURNED same day   total_amount - security_deposit + damage_fee
* RENT / RETURNED otherwise  security_deposit - damage_fee
* anything else              0

"Same day" compares pickup and return on the business calendar. All arithmetic
is done on unrounded Decimals; ``round_currency`` is applied once, where values
leave the service.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from ..core.clock import is_same_business_day
from ..models.order import Order, OrderStatus, OrderType

ZERO = Decimal("0")
CENT = Decimal("0.01")

Number = Union[Decimal, int, float]


def _dec(value: Optional[Number]) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Number) -> Decimal:
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_percent(value: Number) -> Decimal:
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


def order_revenue(order: Order) -> Decimal:
    """Revenue recognised for an order in its current status"""
    if order.order_type == OrderType.SALE:
        return order.total_amount

    if order.status == OrderStatus.RESERVED:
        return order.deposit_amount

    if order.status == OrderStatus.PICKUPED:
        return order.total_amount - order.deposit_amount + order.security_deposit

    if order.status == OrderStatus.RETURNED:
        if is_same_business_day(order.picked_up_at, order.returned_at):
            return order.total_amount - order.security_deposit + order.damage_fee
        # Rental revenue was already recognised at pickup
        return order.security_deposit - order.damage_fee

    return ZERO


def revenue_date(order: Order) -> Optional[datetime]:
    """Timestamp that places an order's revenue inside a reporting period"""
    if order.order_type == OrderType.SALE:
        return order.created_at
    if order.status == OrderStatus.RESERVED:
        return order.created_at
    if order.status == OrderStatus.PICKUPED:
        return order.picked_up_at
    if order.status == OrderStatus.RETURNED:
        return order.returned_at
    return None


def _in_period(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment <= end


def calculate_period_revenue(order: Order, period_start: datetime, period_end: datetime) -> Decimal:
    if not _in_period(revenue_date(order), period_start, period_end):
        return ZERO
    return order_revenue(order)


def calculate_period_revenue_batch(
    orders: Iterable[Order], period_start: datetime, period_end: datetime
) -> Decimal:
    return sum(
        (calculate_period_revenue(order, period_start, period_end) for order in orders),
        ZERO,
    )


def calculate_future_income(
    order: Order, period_start: datetime, period_end: datetime, now: datetime
) -> Decimal:
    """Revenue expected from a planned pickup or return that has not happened yet"""
    if order.order_type != OrderType.RENT:
        return ZERO

    if order.status == OrderStatus.RESERVED:
        planned = order.pickup_plan_at
        if _in_period(planned, period_start, period_end) and planned > now:
            expected = order.total_amount - order.deposit_amount
            return expected if expected > ZERO else ZERO

    if order.status == OrderStatus.PICKUPED:
        planned = order.return_plan_at
        if _in_period(planned, period_start, period_end) and planned > now:
            return order.security_deposit - order.damage_fee

    return ZERO


def calculate_future_income_batch(
    orders: Iterable[Order], period_start: datetime, period_end: datetime, now: datetime
) -> Decimal:
    return sum(
        (calculate_future_income(order, period_start, period_end, now) for order in orders),
        ZERO,
    )


def calculate_growth(current: Number, previous: Number) -> Decimal:
    """Percentage change from previous to current; 0 when there is no baseline"""
    current, previous = _dec(current), _dec(previous)
    if previous == ZERO:
        return ZERO
    return (current - previous) / previous * 100

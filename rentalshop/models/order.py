from enum import Enum
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, field_validator
from decimal import Decimal


class OrderType(str, Enum):
    RENT = "RENT"
    SALE = "SALE"


class OrderStatus(str, Enum):
    RESERVED = "RESERVED"
    PICKUPED = "PICKUPED"
    RETURNED = "RETURNED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: int = 0
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    deposit: Decimal = Decimal("0")

    @field_validator("unit_price", "total_price", "deposit", mode="before")
    @classmethod
    def _money_default(cls, v):
        return Decimal("0") if v is None else v


class Payment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    amount: Decimal = Decimal("0")
    status: PaymentStatus = PaymentStatus.PENDING
    method: Optional[str] = None
    created_at: Optional[datetime] = None


class Order(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    order_number: Optional[str] = None  # e.g. "ORD-001-0042"
    order_type: OrderType
    status: OrderStatus = OrderStatus.RESERVED

    # Amounts
    total_amount: Decimal = Decimal("0")
    deposit_amount: Decimal = Decimal("0")
    security_deposit: Decimal = Decimal("0")
    damage_fee: Decimal = Decimal("0")
    late_fee: Decimal = Decimal("0")
    return_amount: Optional[Decimal] = None

    # Ownership (tenant boundary)
    merchant_id: Optional[int] = None
    outlet_id: Optional[int] = None
    customer_id: Optional[int] = None
    created_by_id: Optional[int] = None

    # Tracking
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pickup_plan_at: Optional[datetime] = None
    return_plan_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    notes: Optional[str] = None
    pickup_notes: Optional[str] = None
    return_notes: Optional[str] = None

    collateral_returned: Optional[bool] = None
    collateral_type: Optional[str] = None
    collateral_details: Optional[str] = None

    # Embedded relations
    order_items: List[OrderItem] = []
    payments: List[Payment] = []
    customer: Optional[Dict[str, Any]] = None
    outlet: Optional[Dict[str, Any]] = None

    @field_validator("total_amount", "deposit_amount", "security_deposit", "damage_fee", "late_fee", mode="before")
    @classmethod
    def _money_default(cls, v):
        return Decimal("0") if v is None else v

    @field_validator(
        "created_at", "updated_at", "pickup_plan_at", "return_plan_at", "picked_up_at", "returned_at"
    )
    @classmethod
    def _timestamps_utc(cls, v):
        return _as_utc(v)

    @field_validator("order_items", "payments", mode="before")
    @classmethod
    def _relations_default(cls, v):
        return [] if v is None else v

    @property
    def is_rental(self) -> bool:
        return self.order_type == OrderType.RENT

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.order import OrderStatus


class OrderStatusUpdate(BaseModel):
    """Body of PATCH /api/orders/{order_id}/status (camelCase or snake_case keys)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: OrderStatus
    notes: Optional[str] = None
    pickup_notes: Optional[str] = None
    return_notes: Optional[str] = None
    picked_up_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    return_amount: Optional[Decimal] = Field(None, ge=0)
    collateral_returned: Optional[bool] = None
    collateral_type: Optional[str] = Field(None, max_length=100)
    collateral_details: Optional[str] = None

    def provided_fields(self) -> dict:
        """Optional fields the client actually sent, status excluded"""
        return self.model_dump(exclude_unset=True, exclude={"status", "picked_up_at", "returned_at"})


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

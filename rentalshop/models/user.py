from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MERCHANT = "MERCHANT"
    OUTLET_ADMIN = "OUTLET_ADMIN"
    OUTLET_STAFF = "OUTLET_STAFF"


ALL_ROLES = (UserRole.ADMIN, UserRole.MERCHANT, UserRole.OUTLET_ADMIN, UserRole.OUTLET_STAFF)


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    email: str
    role: UserRole
    merchant_id: Optional[int] = None
    outlet_id: Optional[int] = None
    is_active: bool = True

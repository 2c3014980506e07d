import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    monthly_rate: Decimal | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

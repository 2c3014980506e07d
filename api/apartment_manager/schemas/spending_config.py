import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def _clean_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Title is required")
    return v


def _clean_description(v: str | None) -> str | None:
    if v is None:
        return None
    return v.strip() or None


class SpendingConfigCreate(BaseModel):
    title: str = Field(max_length=255)
    description: str | None = None

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def description_trimmed(cls, v: str | None) -> str | None:
        return _clean_description(v)


class SpendingConfigUpdate(SpendingConfigCreate):
    pass


class SpendingConfigAssign(BaseModel):
    spending_config_ids: list[uuid.UUID]


class SpendingConfigAssignResponse(BaseModel):
    message: str
    assigned_count: int


class PropertyInConfig(BaseModel):
    id: uuid.UUID
    name: str
    address: str

    model_config = {"from_attributes": True}


class SpendingConfigResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    created_by_user_id: uuid.UUID
    created_at: datetime
    properties: list[PropertyInConfig] = []

    model_config = {"from_attributes": True}

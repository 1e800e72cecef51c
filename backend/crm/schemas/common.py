"""Common response schemas."""

import math
import uuid
from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def reject_nulls(model: BaseModel, fields: tuple[str, ...]) -> None:
    """Patch payloads may omit these fields but may not clear them."""
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


class Page(CamelModel, Generic[T]):
    data: list[T]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, data: list, page: int, page_size: int, total: int) -> "Page":
        return cls(
            data=data,
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )


class BulkDelete(CamelModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)


class BulkResult(CamelModel):
    count: int
    message: str


class DeleteResult(CamelModel):
    success: bool = True
    message: str


class SessionUser(CamelModel):
    id: str
    name: str
    email: str
    email_verified: bool
    image: str | None
    created_at: datetime


class SessionResponse(CamelModel):
    user: SessionUser


class HealthResponse(BaseModel):
    status: str
    version: str = "1.0.0"
    db: str

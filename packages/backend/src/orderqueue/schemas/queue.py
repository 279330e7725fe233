"""Pydantic schemas for queue items and follow-ups.

Learn: Request schemas are deliberately permissive — every field is
optional so a missing `courier` becomes a 400 with a readable message
from QueueService instead of a generic 422 from FastAPI. The entity
schemas (QueueItem, FollowUp) are strict: `status` can only ever hold
one of QUEUE_STATUSES, so an unknown value can't be stored.
"""

from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import Field, field_validator

from orderqueue.schemas.common import CamelModel

QueueStatus = Literal["pending", "in-progress", "done", "next-day"]
QUEUE_STATUSES: tuple[str, ...] = ("pending", "in-progress", "done", "next-day")


# ─── Requests ────────────────────────────────────────────

class QueueItemCreate(CamelModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: Optional[Union[int, str]] = None
    courier: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class StatusChange(CamelModel):
    status: Optional[str] = None


class FollowUpCreate(CamelModel):
    message: Optional[str] = None


# ─── Entities ────────────────────────────────────────────

class FollowUp(CamelModel):
    id: Optional[str] = None
    message: str = Field(..., min_length=1)
    timestamp: datetime


class QueueItem(CamelModel):
    id: str
    product_id: Optional[str] = None
    product_name: str
    size: str
    color: str = ""
    quantity: int = Field(..., ge=1)
    courier: str = Field(..., min_length=1)
    status: QueueStatus = "pending"
    notes: str = ""
    follow_ups: list[FollowUp] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Timestamps written without an offset are UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DeleteResult(CamelModel):
    success: bool

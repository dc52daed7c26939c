from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from planning.models.reminder import ReminderKind


class ReminderResponse(BaseModel):
    """Schema for a patient's notification."""
    id: UUID
    recipient_id: UUID
    kind: ReminderKind
    target_id: UUID
    message: str
    due_at: datetime
    delivered: bool
    delivered_at: datetime | None
    read: bool
    abandoned: bool

    class Config:
        from_attributes = True


class SweepResponse(BaseModel):
    due: int
    delivered: int
    failed: int
    no_contact: int
    contended: int
    abandoned: int
    deferred: int
    skipped: bool

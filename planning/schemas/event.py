from pydantic import BaseModel, Field
from datetime import datetime, date, time
from uuid import UUID


class EventCreate(BaseModel):
    """Schema for creating an event."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    event_date: date = Field(..., description="Event date (YYYY-MM-DD)")
    start_time: time = Field(..., description="Start time (HH:MM)")
    duration_minutes: int = Field(60, gt=0)
    capacity: int = Field(..., ge=1)


class EventUpdate(BaseModel):
    """Schema for updating an event. Moving the date or time re-issues reminders."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    event_date: date | None = None
    start_time: time | None = None
    duration_minutes: int | None = Field(None, gt=0)
    capacity: int | None = Field(None, ge=1)


class EventRegistration(BaseModel):
    """Schema for registering a patient to an event."""
    patient_id: UUID


class EventParticipantResponse(BaseModel):
    participant_id: UUID
    joined_at: datetime

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    """Schema for event response."""
    id: UUID
    title: str
    description: str | None
    event_date: date
    start_time: time
    duration_minutes: int
    capacity: int
    participant_count: int
    participants: list[EventParticipantResponse]

    class Config:
        from_attributes = True

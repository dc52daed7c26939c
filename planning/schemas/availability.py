from pydantic import BaseModel, Field, model_validator
import datetime as dt
from uuid import UUID
from planning.models.availability import WindowStatus


class AvailabilityCreate(BaseModel):
    """Schema for declaring an availability window."""
    owner_id: UUID = Field(..., description="Psychologist ID")
    date: dt.date = Field(..., description="Window date (YYYY-MM-DD)")
    start_time: dt.time = Field(..., description="Window start (HH:MM)")
    end_time: dt.time = Field(..., description="Window end (HH:MM), exclusive")

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityUpdate(BaseModel):
    """Schema for moving or resizing a free window."""
    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time is not None and self.end_time is not None and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityResponse(BaseModel):
    """Schema for availability window response."""
    id: UUID
    owner_id: UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: WindowStatus
    created_at: dt.datetime

    class Config:
        from_attributes = True

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from uuid import UUID
from planning.models.course_session import CourseSessionStatus
from planning.schemas.common import to_local_naive


class CourseSessionBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    course_id: UUID | None = None
    start_at: datetime
    end_at: datetime
    location: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., ge=1)

    @field_validator("start_at", "end_at")
    @classmethod
    def naive_local(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class CourseSessionCreate(CourseSessionBase):
    """Schema for creating a course session."""
    status: CourseSessionStatus = CourseSessionStatus.SCHEDULED


class CourseSessionUpdate(BaseModel):
    """Schema for updating (and possibly rescheduling) a course session."""
    title: str | None = Field(None, min_length=3, max_length=100)
    course_id: UUID | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    location: str | None = Field(None, min_length=1, max_length=255)
    capacity: int | None = Field(None, ge=1)
    status: CourseSessionStatus | None = None

    @field_validator("start_at", "end_at")
    @classmethod
    def naive_local(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value)


class Enrollment(BaseModel):
    user_id: UUID


class SessionParticipantResponse(BaseModel):
    user_id: UUID
    enrolled_at: datetime
    notified: bool
    reminders_sent: int

    class Config:
        from_attributes = True


class CourseSessionResponse(CourseSessionBase):
    """Schema for course session response."""
    id: UUID
    status: CourseSessionStatus
    participant_count: int
    participants: list[SessionParticipantResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EnrollmentResponse(BaseModel):
    session: CourseSessionResponse
    email_sent: bool
    email_error: str | None = None


class RescheduleResponse(BaseModel):
    session: CourseSessionResponse
    changes: list[str]
    notified_count: int
    failed_recipients: list[UUID] = []


class ReminderOutcome(BaseModel):
    user_id: UUID
    email: str | None
    success: bool
    error: str | None = None

    class Config:
        from_attributes = True

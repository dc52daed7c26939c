from pydantic import BaseModel, Field
from datetime import datetime, date, time
from uuid import UUID
from planning.models.appointment import AppointmentStatus


class AppointmentBase(BaseModel):
    """Base appointment schema."""
    appointment_date: date = Field(..., description="Appointment date (YYYY-MM-DD)")
    appointment_time: time = Field(..., description="Appointment time (HH:MM)")
    reason: str | None = Field(None, description="Reason for the visit")


class AppointmentCreate(AppointmentBase):
    """Schema for booking an appointment."""
    psychologist_id: UUID = Field(..., description="Psychologist ID")
    patient_id: UUID = Field(..., description="Patient ID")


class AppointmentUpdate(BaseModel):
    """Schema for updating an appointment (move it or change its status)."""
    appointment_date: date | None = None
    appointment_time: time | None = None
    status: AppointmentStatus | None = None


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response."""
    id: UUID
    psychologist_id: UUID
    patient_id: UUID
    window_id: UUID | None
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

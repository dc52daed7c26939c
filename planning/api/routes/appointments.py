"""Appointment routes - API endpoints for appointment operations."""

from fastapi import APIRouter, HTTPException
from uuid import UUID

from planning.api.deps import DBSession
from planning.models.appointment import AppointmentStatus
from planning.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentResponse,
)
from planning.services.appointment_service import AppointmentService

router = APIRouter()


@router.post("/", response_model=AppointmentResponse, status_code=201)
async def book_appointment(appointment_data: AppointmentCreate, db: DBSession):
    """Book an appointment inside a free availability window."""
    service = AppointmentService(db)
    return await service.book_appointment(
        psychologist_id=appointment_data.psychologist_id,
        patient_id=appointment_data.patient_id,
        appointment_date=appointment_data.appointment_date,
        appointment_time=appointment_data.appointment_time,
        reason=appointment_data.reason,
    )


@router.get("/", response_model=list[AppointmentResponse])
async def list_appointments(
    db: DBSession,
    psychologist_id: UUID | None = None,
    patient_id: UUID | None = None,
    status: AppointmentStatus | None = None,
):
    """List appointments, optionally filtered."""
    service = AppointmentService(db)
    return await service.get_appointments(psychologist_id, patient_id, status)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(appointment_id: UUID, db: DBSession):
    """Get an appointment by ID."""
    service = AppointmentService(db)
    appointment = await service.get_appointment_by_id(appointment_id)

    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    return appointment


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: UUID,
    appointment_data: AppointmentUpdate,
    db: DBSession,
):
    """Update an appointment (move date/time or change status)."""
    service = AppointmentService(db)
    appointment = await service.get_appointment_by_id(appointment_id)

    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    update_data = appointment_data.model_dump(exclude_unset=True)
    new_date = update_data.get("appointment_date", appointment.appointment_date)
    new_time = update_data.get("appointment_time", appointment.appointment_time)

    if new_date != appointment.appointment_date or new_time != appointment.appointment_time:
        appointment = await service.reschedule_appointment(appointment_id, new_date, new_time)

    if appointment_data.status:
        appointment = await service.update_status(appointment_id, appointment_data.status)

    return appointment


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment(appointment_id: UUID, db: DBSession):
    """Cancel an appointment (soft delete) and free its window."""
    service = AppointmentService(db)
    return await service.cancel_appointment(appointment_id)

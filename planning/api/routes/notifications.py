"""Notification routes - patient reminders and the sweep trigger."""

from dataclasses import asdict
from fastapi import APIRouter
from uuid import UUID

from planning.api.deps import DBSession, Scheduler
from planning.schemas.reminder import ReminderResponse, SweepResponse
from planning.services.reminder_service import ReminderService

router = APIRouter()


@router.get("/patient/{patient_id}", response_model=list[ReminderResponse])
async def get_patient_notifications(patient_id: UUID, db: DBSession):
    """Get a patient's notifications, most recent first."""
    service = ReminderService(db)
    return await service.get_recipient_reminders(patient_id)


@router.patch("/{reminder_id}/read", response_model=ReminderResponse)
async def mark_as_read(reminder_id: UUID, db: DBSession):
    """Mark a notification as read."""
    service = ReminderService(db)
    return await service.mark_read(reminder_id)


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(scheduler: Scheduler):
    """Run one reminder sweep now."""
    report = await scheduler.run_sweep()
    return SweepResponse(**asdict(report))

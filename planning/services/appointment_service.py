"""Appointment service - booking, cancelling and moving appointments.

A booking claims its availability window with a conditional update and
writes the appointment and its reminder in the same transaction. If any
later write fails, the request's session rolls back and the claim goes away
with it.
"""

import logging
from datetime import date, time
from uuid import UUID

import logfire
from sqlalchemy.ext.asyncio import AsyncSession

from planning.config import Settings, settings as default_settings
from planning.exceptions import ConflictError, NotFound, SlotUnavailable
from planning.models.appointment import Appointment, AppointmentStatus
from planning.models.availability import AvailabilityWindow
from planning.models.reminder import ReminderKind
from planning.repository import PlanningRepository
from planning.services.availability_service import AvailabilityService, parse_clock
from planning.services.reminder_service import ReminderService, format_when

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service class for appointment operations."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        self.db = db
        self.repo = PlanningRepository(db)
        self.ledger = AvailabilityService(db)
        self.reminders = ReminderService(db, config or default_settings)

    async def get_appointment_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get an appointment by ID."""
        return await self.repo.get_appointment(appointment_id)

    async def get_appointments(
        self,
        psychologist_id: UUID | None = None,
        patient_id: UUID | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        return await self.repo.list_appointments(psychologist_id, patient_id, status)

    async def _claim_window(self, psychologist_id: UUID, day: date, at: time) -> AvailabilityWindow:
        """Find a free window covering the slot and flip it to booked.

        A lost race is retried once against a fresh lookup.
        """
        for attempt in range(2):
            window = await self.ledger.find_free_window(psychologist_id, day, at)
            if not window:
                raise SlotUnavailable()
            try:
                await self.ledger.mark_booked(window.id)
                return window
            except ConflictError:
                if attempt:
                    raise
                logger.info(f"Lost window {window.id} to a concurrent booking, retrying")
        raise SlotUnavailable()

    async def _schedule_reminder(self, appointment: Appointment) -> None:
        message = (
            "Your appointment with the psychologist is scheduled on "
            f"{format_when(appointment.starts_at)}."
        )
        await self.reminders.schedule(
            recipient_id=appointment.patient_id,
            kind=ReminderKind.APPOINTMENT,
            target_id=appointment.id,
            starts_at=appointment.starts_at,
            message=message,
        )

    async def book_appointment(
        self,
        psychologist_id: UUID,
        patient_id: UUID,
        appointment_date: date,
        appointment_time: time | str,
        reason: str | None = None,
    ) -> Appointment:
        """Book a slot inside one of the psychologist's free windows."""
        at = parse_clock(appointment_time)

        if not await self.repo.get_user(patient_id):
            raise NotFound("Patient not found")

        window = await self._claim_window(psychologist_id, appointment_date, at)

        appointment = await self.repo.create_appointment(
            psychologist_id=psychologist_id,
            patient_id=patient_id,
            window_id=window.id,
            appointment_date=appointment_date,
            appointment_time=at,
            reason=reason,
            status=AppointmentStatus.PENDING.value,
        )
        await self._schedule_reminder(appointment)

        logfire.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            psychologist_id=str(psychologist_id),
            date=str(appointment_date),
            time=at.strftime("%H:%M"),
        )
        return appointment

    async def cancel_appointment(self, appointment_id: UUID) -> Appointment:
        """Cancel (soft delete) and give the window back. Cancelling twice is a no-op."""
        appointment = await self.repo.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")

        cancelled = await self.repo.set_appointment_status(
            appointment_id,
            [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED],
            AppointmentStatus.CANCELLED,
        )
        if cancelled:
            await self.ledger.mark_free(
                appointment.psychologist_id,
                appointment.appointment_date,
                appointment.window_id,
            )
            await self.reminders.withdraw(appointment.id, reason="Appointment cancelled")
            logfire.info("appointment_cancelled", appointment_id=str(appointment_id))

        await self.db.refresh(appointment)
        return appointment

    async def confirm_appointment(self, appointment_id: UUID) -> Appointment:
        appointment = await self.repo.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")

        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise ConflictError("Cannot confirm a cancelled appointment")

        await self.repo.set_appointment_status(
            appointment_id, [AppointmentStatus.PENDING], AppointmentStatus.CONFIRMED
        )
        await self.db.refresh(appointment)
        return appointment

    async def update_status(self, appointment_id: UUID, status: AppointmentStatus) -> Appointment:
        """Move to `status`. Asking for the current status changes nothing."""
        appointment = await self.repo.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")
        if appointment.status == status.value:
            return appointment

        if status == AppointmentStatus.CANCELLED:
            return await self.cancel_appointment(appointment_id)
        if status == AppointmentStatus.CONFIRMED:
            return await self.confirm_appointment(appointment_id)
        raise ConflictError("An appointment cannot go back to pending")

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        new_date: date,
        new_time: time | str,
    ) -> Appointment:
        """Move a live appointment: claim the new window, release the old one, re-remind."""
        at = parse_clock(new_time)
        appointment = await self.repo.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")
        if not appointment.is_live:
            raise ConflictError("Cannot reschedule a cancelled appointment")

        if appointment.appointment_date == new_date and appointment.appointment_time == at:
            return appointment

        old_date, old_window_id = appointment.appointment_date, appointment.window_id
        old_window = await self.ledger.get_window(old_window_id) if old_window_id else None

        # Moving inside the window already held needs no new claim
        if not (old_window and old_window.date == new_date and old_window.covers(at)):
            window = await self._claim_window(appointment.psychologist_id, new_date, at)
            await self.ledger.mark_free(appointment.psychologist_id, old_date, old_window_id)
            appointment.window_id = window.id

        appointment.appointment_date = new_date
        appointment.appointment_time = at
        await self.repo.save()
        await self.db.refresh(appointment)

        await self.reminders.withdraw(appointment.id, reason="Appointment rescheduled")
        await self._schedule_reminder(appointment)

        logfire.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            date=str(new_date),
            time=at.strftime("%H:%M"),
        )
        return appointment

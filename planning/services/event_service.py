"""Event service - capacity-bounded registrations with reminders."""

import logging
from datetime import date, time
from uuid import UUID

import logfire
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from planning.config import Settings, settings as default_settings
from planning.exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    ConflictError,
    InvalidRequest,
    NotFound,
)
from planning.models.event import Event, EventParticipant
from planning.models.reminder import ReminderKind
from planning.repository import PlanningRepository
from planning.services.availability_service import parse_clock
from planning.services.enrollment import ensure_can_enroll
from planning.services.reminder_service import ReminderService, format_when

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "event_date", "start_time", "duration_minutes", "capacity")


class EventService:
    """Service class for event operations."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        self.db = db
        self.repo = PlanningRepository(db)
        self.reminders = ReminderService(db, config or default_settings)

    async def create_event(
        self,
        title: str,
        event_date: date,
        start_time: time | str,
        capacity: int,
        duration_minutes: int = 60,
        description: str | None = None,
    ) -> Event:
        if capacity < 1:
            raise InvalidRequest("Capacity must be at least 1")
        if duration_minutes <= 0:
            raise InvalidRequest("Duration must be positive")

        return await self.repo.create_event(
            title=title,
            description=description,
            event_date=event_date,
            start_time=parse_clock(start_time),
            duration_minutes=duration_minutes,
            capacity=capacity,
            participant_count=0,
        )

    async def _schedule_reminder(self, event: Event, patient_id: UUID) -> None:
        message = (
            f'You are registered for the event "{event.title}" '
            f"on {format_when(event.starts_at)}."
        )
        await self.reminders.schedule(
            recipient_id=patient_id,
            kind=ReminderKind.EVENT,
            target_id=event.id,
            starts_at=event.starts_at,
            message=message,
        )

    async def update_event(self, event_id: UUID, fields: dict) -> Event:
        """Apply an update. Moving the start re-issues every participant's reminder."""
        event = await self.repo.get_event(event_id)
        if not event:
            raise NotFound("Event not found")

        updates = {
            name: value
            for name, value in fields.items()
            if name in EDITABLE_FIELDS and value is not None
        }
        if "start_time" in updates:
            updates["start_time"] = parse_clock(updates["start_time"])
        if "duration_minutes" in updates and updates["duration_minutes"] <= 0:
            raise InvalidRequest("Duration must be positive")
        if "capacity" in updates and updates["capacity"] < event.participant_count:
            raise CapacityExceeded("Capacity cannot be lower than the number of registered participants")

        previous_start = event.starts_at
        event = await self.repo.update_event(event, updates)
        if event.starts_at == previous_start:
            return event

        withdrawn = await self.reminders.withdraw(event.id, reason="Event rescheduled")
        for participant in event.participants:
            await self._schedule_reminder(event, participant.participant_id)

        logfire.info(
            "event_rescheduled",
            event_id=str(event_id),
            starts_at=event.starts_at.isoformat(),
            withdrawn=withdrawn,
            rescheduled=len(event.participants),
        )
        return event

    async def delete_event(self, event_id: UUID) -> None:
        """Delete the event with its registrations and withdraw its pending reminders."""
        event = await self.repo.get_event(event_id)
        if not event:
            raise NotFound("Event not found")

        withdrawn = await self.reminders.withdraw(event.id, reason="Event deleted")
        await self.repo.delete_event(event)
        logger.info(f"🗑️ Deleted event {event_id}, withdrew {withdrawn} reminders")

    async def get_event(self, event_id: UUID) -> Event | None:
        return await self.repo.get_event(event_id)

    async def get_events(self) -> list[Event]:
        return await self.repo.list_events()

    async def get_participants(self, event_id: UUID) -> list[EventParticipant]:
        event = await self.repo.get_event(event_id)
        if not event:
            raise NotFound("Event not found")
        return list(event.participants)

    async def register_for_event(self, event_id: UUID, patient_id: UUID) -> Event:
        """Register a patient and schedule their reminder."""
        event = await self.repo.get_event(event_id)
        if not event:
            raise NotFound("Event not found")

        ensure_can_enroll(
            [p.participant_id for p in event.participants],
            event.capacity,
            patient_id,
            already_message="Patient is already registered",
        )

        try:
            seated = await self.repo.compare_and_append_participant(event.id, patient_id)
        except IntegrityError:
            # Same patient registered concurrently; the request rolls back
            raise AlreadyRegistered("Patient is already registered")
        if not seated:
            raise ConflictError("The last seat was just taken")

        await self._schedule_reminder(event, patient_id)

        logfire.info("event_registration", event_id=str(event_id), patient_id=str(patient_id))
        return await self.repo.get_event(event_id)

    async def cancel_registration(self, event_id: UUID, patient_id: UUID) -> Event:
        event = await self.repo.get_event(event_id)
        if not event:
            raise NotFound("Event not found")

        if not await self.repo.remove_event_participant(event_id, patient_id):
            raise NotFound("Registration not found")

        await self.reminders.withdraw(event_id, patient_id, reason="Registration cancelled")
        logfire.info("event_registration_cancelled", event_id=str(event_id), patient_id=str(patient_id))
        return await self.repo.get_event(event_id)

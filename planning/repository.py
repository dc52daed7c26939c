"""Persistence port - every read and conditional write of the planning core.

Contended state (window status, participant counters, reminder leases and
delivery flags) is only changed through single-statement conditional
UPDATEs. The affected row count decides which of two concurrent callers
won, so no lock has to be shared between service instances.
"""

from datetime import date, datetime, time
from uuid import UUID

from sqlalchemy import select, update, delete, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from planning.models import (
    Appointment,
    AppointmentStatus,
    AvailabilityWindow,
    CourseSession,
    Event,
    EventParticipant,
    Reminder,
    SessionParticipant,
    User,
    WindowStatus,
)


class PlanningRepository:
    """Database operations used by the planning services."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    # =========================================================================
    # Users
    # =========================================================================

    async def create_user(self, **fields) -> User:
        return await self._add(User(**fields))

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_users(self, user_ids: list[UUID]) -> dict[UUID, User]:
        """Load several users at once, keyed by id."""
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {user.id: user for user in result.scalars().all()}

    # =========================================================================
    # Availability windows
    # =========================================================================

    async def create_window(self, **fields) -> AvailabilityWindow:
        return await self._add(AvailabilityWindow(**fields))

    async def get_window(self, window_id: UUID) -> AvailabilityWindow | None:
        return await self.db.get(AvailabilityWindow, window_id)

    async def delete_window(self, window: AvailabilityWindow) -> None:
        await self.db.delete(window)
        await self.db.flush()

    async def update_window(self, window: AvailabilityWindow, fields: dict) -> AvailabilityWindow:
        for field, value in fields.items():
            setattr(window, field, value)
        await self.db.flush()
        await self.db.refresh(window)
        return window

    async def get_availability(
        self, owner_id: UUID, day: date, at: time
    ) -> AvailabilityWindow | None:
        """Free window of `owner_id` on `day` whose [start, end) contains `at`."""
        result = await self.db.execute(
            select(AvailabilityWindow)
            .where(
                and_(
                    AvailabilityWindow.owner_id == owner_id,
                    AvailabilityWindow.date == day,
                    AvailabilityWindow.start_time <= at,
                    AvailabilityWindow.end_time > at,
                    AvailabilityWindow.status == WindowStatus.FREE.value,
                )
            )
            .order_by(AvailabilityWindow.start_time)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_windows(
        self,
        owner_id: UUID | None = None,
        day: date | None = None,
        status: WindowStatus | None = None,
    ) -> list[AvailabilityWindow]:
        query = select(AvailabilityWindow)

        if owner_id:
            query = query.where(AvailabilityWindow.owner_id == owner_id)
        if day:
            query = query.where(AvailabilityWindow.date == day)
        if status:
            query = query.where(AvailabilityWindow.status == status.value)

        query = query.order_by(AvailabilityWindow.date, AvailabilityWindow.start_time)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def compare_and_set_window_status(
        self, window_id: UUID, expected: WindowStatus, new: WindowStatus
    ) -> bool:
        result = await self.db.execute(
            update(AvailabilityWindow)
            .where(
                and_(
                    AvailabilityWindow.id == window_id,
                    AvailabilityWindow.status == expected.value,
                )
            )
            .values(status=new.value, updated_at=datetime.utcnow())
        )
        return result.rowcount == 1

    async def find_booked_window(
        self, owner_id: UUID, day: date, window_id: UUID | None = None
    ) -> AvailabilityWindow | None:
        """Booked window for owner+date, preferring `window_id` when given."""
        query = select(AvailabilityWindow).where(
            and_(
                AvailabilityWindow.owner_id == owner_id,
                AvailabilityWindow.date == day,
                AvailabilityWindow.status == WindowStatus.BOOKED.value,
            )
        )
        if window_id:
            result = await self.db.execute(query.where(AvailabilityWindow.id == window_id))
            window = result.scalar_one_or_none()
            if window:
                return window

        result = await self.db.execute(
            query.order_by(AvailabilityWindow.start_time).limit(1)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # Appointments
    # =========================================================================

    async def create_appointment(self, **fields) -> Appointment:
        return await self._add(Appointment(**fields))

    async def get_appointment(self, appointment_id: UUID) -> Appointment | None:
        return await self.db.get(Appointment, appointment_id)

    async def list_appointments(
        self,
        psychologist_id: UUID | None = None,
        patient_id: UUID | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        query = select(Appointment)

        if psychologist_id:
            query = query.where(Appointment.psychologist_id == psychologist_id)
        if patient_id:
            query = query.where(Appointment.patient_id == patient_id)
        if status:
            query = query.where(Appointment.status == status.value)

        query = query.order_by(Appointment.appointment_date, Appointment.appointment_time)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def set_appointment_status(
        self, appointment_id: UUID, expected: list[AppointmentStatus], new: AppointmentStatus
    ) -> bool:
        result = await self.db.execute(
            update(Appointment)
            .where(
                and_(
                    Appointment.id == appointment_id,
                    Appointment.status.in_([status.value for status in expected]),
                )
            )
            .values(status=new.value, updated_at=datetime.utcnow())
        )
        return result.rowcount == 1

    # =========================================================================
    # Reminders
    # =========================================================================

    async def create_reminder(self, **fields) -> Reminder:
        return await self._add(Reminder(**fields))

    async def get_reminder(self, reminder_id: UUID) -> Reminder | None:
        return await self.db.get(Reminder, reminder_id)

    async def query_due_reminders(
        self, now: datetime, limit: int = 100, lease_now: datetime | None = None
    ) -> list[Reminder]:
        """Undelivered, non-abandoned reminders due at or before `now`.

        Reminders whose lease runs past `lease_now` (default `now`) are held by
        another sweeper and left out.
        """
        lease_now = lease_now or now
        result = await self.db.execute(
            select(Reminder)
            .where(
                and_(
                    Reminder.delivered.is_(False),
                    Reminder.abandoned.is_(False),
                    Reminder.due_at <= now,
                    or_(Reminder.claimed_until.is_(None), Reminder.claimed_until < lease_now),
                )
            )
            .order_by(Reminder.due_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def claim_reminder(self, reminder_id: UUID, now: datetime, until: datetime) -> bool:
        """Take the dispatch lease on a reminder; False if someone else holds it."""
        result = await self.db.execute(
            update(Reminder)
            .where(
                and_(
                    Reminder.id == reminder_id,
                    Reminder.delivered.is_(False),
                    Reminder.abandoned.is_(False),
                    or_(Reminder.claimed_until.is_(None), Reminder.claimed_until < now),
                )
            )
            .values(claimed_until=until)
        )
        return result.rowcount == 1

    async def mark_reminder_delivered(self, reminder_id: UUID, now: datetime) -> bool:
        result = await self.db.execute(
            update(Reminder)
            .where(and_(Reminder.id == reminder_id, Reminder.delivered.is_(False)))
            .values(delivered=True, delivered_at=now, claimed_until=None, last_error=None)
        )
        return result.rowcount == 1

    async def record_reminder_failure(
        self, reminder_id: UUID, error: str, max_attempts: int
    ) -> Reminder | None:
        """Count a failed attempt, release the lease, abandon at the backstop."""
        await self.db.execute(
            update(Reminder)
            .where(and_(Reminder.id == reminder_id, Reminder.delivered.is_(False)))
            .values(
                attempts=Reminder.attempts + 1,
                last_error=error,
                claimed_until=None,
            )
        )
        await self.db.execute(
            update(Reminder)
            .where(
                and_(
                    Reminder.id == reminder_id,
                    Reminder.delivered.is_(False),
                    Reminder.attempts >= max_attempts,
                )
            )
            .values(abandoned=True)
        )
        result = await self.db.execute(
            select(Reminder)
            .where(Reminder.id == reminder_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def abandon_reminders_for_target(
        self, target_id: UUID, recipient_id: UUID | None = None, reason: str = ""
    ) -> int:
        """Withdraw still-pending reminders of a cancelled appointment or registration."""
        conditions = [
            Reminder.target_id == target_id,
            Reminder.delivered.is_(False),
            Reminder.abandoned.is_(False),
        ]
        if recipient_id:
            conditions.append(Reminder.recipient_id == recipient_id)

        result = await self.db.execute(
            update(Reminder)
            .where(and_(*conditions))
            .values(abandoned=True, last_error=reason or None)
        )
        return result.rowcount

    async def list_reminders_for_recipient(self, recipient_id: UUID) -> list[Reminder]:
        result = await self.db.execute(
            select(Reminder)
            .where(Reminder.recipient_id == recipient_id)
            .order_by(Reminder.due_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def mark_reminder_read(self, reminder_id: UUID) -> Reminder | None:
        reminder = await self.db.get(Reminder, reminder_id)
        if not reminder:
            return None
        reminder.read = True
        await self.db.flush()
        await self.db.refresh(reminder)
        return reminder

    # =========================================================================
    # Events
    # =========================================================================

    async def create_event(self, **fields) -> Event:
        return await self._add(Event(**fields))

    async def get_event(self, event_id: UUID) -> Event | None:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_events(self) -> list[Event]:
        result = await self.db.execute(
            select(Event).order_by(Event.event_date, Event.start_time)
        )
        return list(result.scalars().all())

    async def update_event(self, event: Event, fields: dict) -> Event:
        for field, value in fields.items():
            setattr(event, field, value)
        await self.db.flush()
        return await self.get_event(event.id)

    async def delete_event(self, event: Event) -> None:
        await self.db.delete(event)
        await self.db.flush()

    async def compare_and_append_participant(
        self, event_id: UUID, participant_id: UUID
    ) -> bool:
        """Take a seat only while participant_count < capacity, then record it."""
        result = await self.db.execute(
            update(Event)
            .where(and_(Event.id == event_id, Event.participant_count < Event.capacity))
            .values(participant_count=Event.participant_count + 1)
        )
        if result.rowcount != 1:
            return False

        self.db.add(EventParticipant(event_id=event_id, participant_id=participant_id))
        await self.db.flush()
        return True

    async def remove_event_participant(self, event_id: UUID, participant_id: UUID) -> bool:
        result = await self.db.execute(
            delete(EventParticipant).where(
                and_(
                    EventParticipant.event_id == event_id,
                    EventParticipant.participant_id == participant_id,
                )
            )
        )
        if result.rowcount == 0:
            return False

        await self.db.execute(
            update(Event)
            .where(and_(Event.id == event_id, Event.participant_count > 0))
            .values(participant_count=Event.participant_count - 1)
        )
        return True

    # =========================================================================
    # Course sessions
    # =========================================================================

    async def create_course_session(self, **fields) -> CourseSession:
        return await self._add(CourseSession(**fields))

    async def get_course_session(self, session_id: UUID) -> CourseSession | None:
        result = await self.db.execute(
            select(CourseSession)
            .where(CourseSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_course_sessions(self, user_id: UUID | None = None) -> list[CourseSession]:
        query = select(CourseSession)
        if user_id:
            query = query.join(SessionParticipant).where(SessionParticipant.user_id == user_id)
        result = await self.db.execute(query.order_by(CourseSession.start_at))
        return list(result.scalars().all())

    async def update_course_session(self, session: CourseSession, fields: dict) -> CourseSession:
        for field, value in fields.items():
            setattr(session, field, value)
        await self.db.flush()
        return await self.get_course_session(session.id)

    async def delete_course_session(self, session: CourseSession) -> None:
        await self.db.delete(session)
        await self.db.flush()

    async def compare_and_enroll(self, session_id: UUID, user_id: UUID) -> SessionParticipant | None:
        """Conditional seat increment on the session, then the participant row."""
        result = await self.db.execute(
            update(CourseSession)
            .where(
                and_(
                    CourseSession.id == session_id,
                    CourseSession.participant_count < CourseSession.capacity,
                )
            )
            .values(participant_count=CourseSession.participant_count + 1)
        )
        if result.rowcount != 1:
            return None

        return await self._add(SessionParticipant(session_id=session_id, user_id=user_id))

    async def remove_session_participant(self, session_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            delete(SessionParticipant).where(
                and_(
                    SessionParticipant.session_id == session_id,
                    SessionParticipant.user_id == user_id,
                )
            )
        )
        if result.rowcount == 0:
            return False

        await self.db.execute(
            update(CourseSession)
            .where(and_(CourseSession.id == session_id, CourseSession.participant_count > 0))
            .values(participant_count=CourseSession.participant_count - 1)
        )
        return True

    async def save(self) -> None:
        """Flush pending attribute changes on loaded objects."""
        await self.db.flush()

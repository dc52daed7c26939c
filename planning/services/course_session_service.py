"""Course session service - enrollment and reschedule notifications."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

import logfire
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from planning.config import Settings, settings as default_settings
from planning.exceptions import (
    AlreadyEnrolled,
    CapacityExceeded,
    ConflictError,
    InvalidRequest,
    NotFound,
)
from planning.models.course_session import CourseSession, CourseSessionStatus, SessionParticipant
from planning.repository import PlanningRepository
from planning.services.email_service import DispatchResult, NotificationDispatcher, send_with_timeout
from planning.services.enrollment import ensure_can_enroll
from planning.services.reminder_service import format_when

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "course_id", "start_at", "end_at", "location", "capacity", "status")


@dataclass
class RecipientOutcome:
    user_id: UUID
    email: str | None
    success: bool
    error: str | None = None


@dataclass
class RescheduleResult:
    session: CourseSession
    changes: list[str]
    notified_count: int = 0
    failures: list[RecipientOutcome] = field(default_factory=list)


@dataclass
class EnrollmentResult:
    session: CourseSession
    participant: SessionParticipant
    email_sent: bool
    email_error: str | None = None


def describe_schedule_changes(session: CourseSession, fields: dict) -> list[str]:
    """Field-by-field diff of start, end and location. Empty means nothing moved."""
    changes = []
    start_at = fields.get("start_at")
    if start_at is not None and start_at != session.start_at:
        changes.append(f"Start date changed: {format_when(start_at)}")
    end_at = fields.get("end_at")
    if end_at is not None and end_at != session.end_at:
        changes.append(f"End date changed: {format_when(end_at)}")
    location = fields.get("location")
    if location is not None and location != session.location:
        changes.append(f"Location changed: {location}")
    return changes


class CourseSessionService:
    """Service class for course session operations."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: NotificationDispatcher,
        config: Settings | None = None,
    ):
        self.db = db
        self.repo = PlanningRepository(db)
        self.dispatcher = dispatcher
        self.config = config or default_settings

    def _session_link(self, session: CourseSession) -> str:
        return f"{self.config.frontend_url}/sessions/{session.id}"

    async def _notify(self, user_ids: list[UUID], subject: str, body: str) -> list[RecipientOutcome]:
        """Send one email per user. A failing recipient never stops the others."""
        users = await self.repo.get_users(user_ids)
        outcomes = []
        for user_id in user_ids:
            user = users.get(user_id)
            if not user or not user.email:
                logger.warning(f"⚠️ No email address for participant {user_id}")
                outcomes.append(RecipientOutcome(user_id, None, False, "No contact address"))
                continue

            try:
                result = await send_with_timeout(
                    self.dispatcher, user.email, subject, body, self.config.dispatch_timeout_seconds
                )
            except Exception as e:
                logger.error(f"❌ Error notifying {user.email}: {e}")
                result = DispatchResult(success=False, error=str(e))
            if not result.success:
                logger.warning(f"⚠️ Could not notify {user.email}: {result.error}")
            outcomes.append(RecipientOutcome(user_id, user.email, result.success, result.error))
        return outcomes

    async def create_session(
        self,
        title: str,
        start_at: datetime,
        end_at: datetime,
        location: str,
        capacity: int,
        course_id: UUID | None = None,
        status: str | None = None,
    ) -> CourseSession:
        if end_at <= start_at:
            raise InvalidRequest("Session end must be after its start")
        if capacity < 1:
            raise InvalidRequest("Capacity must be at least 1")

        fields = dict(
            title=title,
            course_id=course_id,
            start_at=start_at,
            end_at=end_at,
            location=location,
            capacity=capacity,
            participant_count=0,
        )
        if status:
            fields["status"] = CourseSessionStatus(status).value
        return await self.repo.create_course_session(**fields)

    async def get_session(self, session_id: UUID) -> CourseSession | None:
        return await self.repo.get_course_session(session_id)

    async def get_sessions(self, user_id: UUID | None = None) -> list[CourseSession]:
        return await self.repo.list_course_sessions(user_id)

    async def enroll(self, session_id: UUID, user_id: UUID) -> EnrollmentResult:
        """Enroll a user and email them a confirmation (a failed email keeps the seat)."""
        session = await self.repo.get_course_session(session_id)
        if not session:
            raise NotFound("Session not found")

        user = await self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found")

        ensure_can_enroll(
            [p.user_id for p in session.participants],
            session.capacity,
            user_id,
            already_message="User is already enrolled",
        )

        try:
            participant = await self.repo.compare_and_enroll(session_id, user_id)
        except IntegrityError:
            raise AlreadyEnrolled("User is already enrolled")
        if not participant:
            raise ConflictError("The last seat was just taken")

        body = (
            f'You are enrolled in "{session.title}".\n'
            f"Starts: {format_when(session.start_at)}\n"
            f"Ends: {format_when(session.end_at)}\n"
            f"Location: {session.location}\n"
            f"Access: {self._session_link(session)}"
        )
        [outcome] = await self._notify([user_id], f"Enrollment confirmed: {session.title}", body)
        if outcome.success:
            participant.notified = True
            await self.repo.save()

        logfire.info(
            "course_enrollment",
            session_id=str(session_id),
            user_id=str(user_id),
            email_sent=outcome.success,
        )
        return EnrollmentResult(
            session=await self.repo.get_course_session(session_id),
            participant=participant,
            email_sent=outcome.success,
            email_error=outcome.error,
        )

    async def cancel_enrollment(self, session_id: UUID, user_id: UUID) -> CourseSession:
        session = await self.repo.get_course_session(session_id)
        if not session:
            raise NotFound("Session not found")

        if not await self.repo.remove_session_participant(session_id, user_id):
            raise NotFound("Enrollment not found")

        return await self.repo.get_course_session(session_id)

    async def reschedule(self, session_id: UUID, fields: dict) -> RescheduleResult:
        """Apply an update and tell every participant when the schedule moved."""
        session = await self.repo.get_course_session(session_id)
        if not session:
            raise NotFound("Session not found")

        updates = {
            name: value
            for name, value in fields.items()
            if name in EDITABLE_FIELDS and value is not None
        }
        if "status" in updates:
            updates["status"] = CourseSessionStatus(updates["status"]).value

        start_at = updates.get("start_at", session.start_at)
        end_at = updates.get("end_at", session.end_at)
        if end_at <= start_at:
            raise InvalidRequest("Session end must be after its start")
        if "capacity" in updates and updates["capacity"] < session.participant_count:
            raise CapacityExceeded("Capacity cannot be lower than the number of enrolled participants")

        changes = describe_schedule_changes(session, updates)
        session = await self.repo.update_course_session(session, updates)
        result = RescheduleResult(session=session, changes=changes)

        participant_ids = [p.user_id for p in session.participants]
        if not changes or not participant_ids:
            return result

        body = (
            f'The schedule of "{session.title}" has changed:\n'
            + "\n".join(f"- {change}" for change in changes)
            + f"\n\nDetails: {self._session_link(session)}"
        )
        outcomes = await self._notify(participant_ids, f"Schedule change: {session.title}", body)
        result.notified_count = sum(1 for outcome in outcomes if outcome.success)
        result.failures = [outcome for outcome in outcomes if not outcome.success]

        logger.info(
            f"📧 Schedule change for session {session_id}: "
            f"{result.notified_count}/{len(outcomes)} participants notified"
        )
        logfire.info(
            "course_session_rescheduled",
            session_id=str(session_id),
            changes=changes,
            notified=result.notified_count,
            failed=len(result.failures),
        )
        return result

    async def send_reminders(self, session_id: UUID) -> list[RecipientOutcome]:
        """Manual reminder to every participant; counts successful sends per participant."""
        session = await self.repo.get_course_session(session_id)
        if not session:
            raise NotFound("Session not found")

        body = (
            f'Reminder: "{session.title}" starts on {format_when(session.start_at)}.\n'
            f"Location: {session.location}"
        )
        participants = {p.user_id: p for p in session.participants}
        outcomes = await self._notify(list(participants), f"Reminder: {session.title}", body)
        for outcome in outcomes:
            if outcome.success:
                participants[outcome.user_id].reminders_sent += 1
        await self.repo.save()
        return outcomes

    async def delete_session(self, session_id: UUID) -> None:
        """Delete a session together with its enrollments."""
        session = await self.repo.get_course_session(session_id)
        if not session:
            raise NotFound("Session not found")

        enrolled = len(session.participants)
        await self.repo.delete_course_session(session)
        logger.info(f"🗑️ Deleted course session {session_id} ({enrolled} enrollments)")

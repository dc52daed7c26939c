"""Course session routes - sessions, enrollment and schedule changes."""

from fastapi import APIRouter, HTTPException
from uuid import UUID

from planning.api.deps import DBSession, Dispatcher
from planning.exceptions import DispatchFailure
from planning.schemas.course_session import (
    CourseSessionCreate,
    CourseSessionUpdate,
    CourseSessionResponse,
    Enrollment,
    EnrollmentResponse,
    RescheduleResponse,
    ReminderOutcome,
)
from planning.services.course_session_service import CourseSessionService

router = APIRouter()


@router.post("/", response_model=CourseSessionResponse, status_code=201)
async def create_session(session_data: CourseSessionCreate, db: DBSession, dispatcher: Dispatcher):
    """Create a course session."""
    service = CourseSessionService(db, dispatcher)
    session = await service.create_session(**session_data.model_dump())
    return await service.get_session(session.id)


@router.get("/", response_model=list[CourseSessionResponse])
async def list_sessions(db: DBSession, dispatcher: Dispatcher, user_id: UUID | None = None):
    """List sessions, or only those a user is enrolled in."""
    service = CourseSessionService(db, dispatcher)
    return await service.get_sessions(user_id)


@router.get("/{session_id}", response_model=CourseSessionResponse)
async def get_session(session_id: UUID, db: DBSession, dispatcher: Dispatcher):
    """Get a course session by ID."""
    service = CourseSessionService(db, dispatcher)
    session = await service.get_session(session_id)

    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    return session


@router.patch("/{session_id}", response_model=RescheduleResponse)
async def update_session(
    session_id: UUID,
    session_data: CourseSessionUpdate,
    db: DBSession,
    dispatcher: Dispatcher,
):
    """Update a session; participants are emailed when start, end or location move."""
    service = CourseSessionService(db, dispatcher)
    result = await service.reschedule(session_id, session_data.model_dump(exclude_unset=True))
    return RescheduleResponse(
        session=CourseSessionResponse.model_validate(result.session),
        changes=result.changes,
        notified_count=result.notified_count,
        failed_recipients=[failure.user_id for failure in result.failures],
    )


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: UUID, db: DBSession, dispatcher: Dispatcher):
    """Delete a session and its enrollments."""
    service = CourseSessionService(db, dispatcher)
    await service.delete_session(session_id)


@router.post("/{session_id}/enrollments", response_model=EnrollmentResponse, status_code=201)
async def enroll(session_id: UUID, enrollment: Enrollment, db: DBSession, dispatcher: Dispatcher):
    """Enroll a user in a session."""
    service = CourseSessionService(db, dispatcher)
    result = await service.enroll(session_id, enrollment.user_id)
    return EnrollmentResponse(
        session=CourseSessionResponse.model_validate(result.session),
        email_sent=result.email_sent,
        email_error=result.email_error,
    )


@router.delete("/{session_id}/enrollments/{user_id}", response_model=CourseSessionResponse)
async def cancel_enrollment(session_id: UUID, user_id: UUID, db: DBSession, dispatcher: Dispatcher):
    """Cancel a user's enrollment."""
    service = CourseSessionService(db, dispatcher)
    return await service.cancel_enrollment(session_id, user_id)


@router.post("/{session_id}/reminders", response_model=list[ReminderOutcome])
async def send_reminders(session_id: UUID, db: DBSession, dispatcher: Dispatcher):
    """Email a reminder to every participant now."""
    service = CourseSessionService(db, dispatcher)
    outcomes = await service.send_reminders(session_id)
    if outcomes and not any(outcome.success for outcome in outcomes):
        raise DispatchFailure("No participant could be reached")
    return outcomes

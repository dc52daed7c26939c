"""Services package - Business logic layer."""

from planning.services.user_service import UserService
from planning.services.availability_service import AvailabilityService
from planning.services.appointment_service import AppointmentService
from planning.services.event_service import EventService
from planning.services.course_session_service import CourseSessionService
from planning.services.reminder_service import ReminderService
from planning.services.reminder_scheduler import ReminderScheduler
from planning.services.email_service import EmailDispatcher

__all__ = [
    "UserService",
    "AvailabilityService",
    "AppointmentService",
    "EventService",
    "CourseSessionService",
    "ReminderService",
    "ReminderScheduler",
    "EmailDispatcher",
]

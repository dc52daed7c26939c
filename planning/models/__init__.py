"""Models package - SQLAlchemy mapped classes."""

from planning.models.user import User, UserRole
from planning.models.availability import AvailabilityWindow, WindowStatus
from planning.models.appointment import Appointment, AppointmentStatus
from planning.models.event import Event, EventParticipant
from planning.models.course_session import CourseSession, CourseSessionStatus, SessionParticipant
from planning.models.reminder import Reminder, ReminderKind

__all__ = [
    "User",
    "UserRole",
    "AvailabilityWindow",
    "WindowStatus",
    "Appointment",
    "AppointmentStatus",
    "Event",
    "EventParticipant",
    "CourseSession",
    "CourseSessionStatus",
    "SessionParticipant",
    "Reminder",
    "ReminderKind",
]

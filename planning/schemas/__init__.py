from planning.schemas.user import UserCreate, UserUpdate, UserResponse
from planning.schemas.availability import AvailabilityCreate, AvailabilityResponse
from planning.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentResponse,
)
from planning.schemas.event import (
    EventCreate,
    EventRegistration,
    EventParticipantResponse,
    EventResponse,
)
from planning.schemas.course_session import (
    CourseSessionCreate,
    CourseSessionUpdate,
    CourseSessionResponse,
    Enrollment,
    EnrollmentResponse,
    RescheduleResponse,
    ReminderOutcome,
)
from planning.schemas.reminder import ReminderResponse, SweepResponse

__all__ = [
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "AvailabilityCreate",
    "AvailabilityResponse",
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentResponse",
    "EventCreate",
    "EventRegistration",
    "EventParticipantResponse",
    "EventResponse",
    "CourseSessionCreate",
    "CourseSessionUpdate",
    "CourseSessionResponse",
    "Enrollment",
    "EnrollmentResponse",
    "RescheduleResponse",
    "ReminderOutcome",
    "ReminderResponse",
    "SweepResponse",
]

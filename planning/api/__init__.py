from fastapi import APIRouter
from planning.api.routes import users, availability, appointments, events, course_sessions, notifications

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(course_sessions.router, prefix="/course-sessions", tags=["Course Sessions"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

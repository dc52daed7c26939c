"""Error kinds raised by the planning core.

Each error carries the HTTP status the API layer answers with; the mapping
itself lives in the exception handler registered in ``planning.main``.
"""


class PlanningError(Exception):
    """Base class for all planning errors."""

    status_code = 400
    default_message = "Planning operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(PlanningError):
    status_code = 404
    default_message = "Resource not found"


class SlotUnavailable(PlanningError):
    status_code = 409
    default_message = "The psychologist is not available at this time slot."


class ConflictError(PlanningError):
    """A concurrent operation won the race for the same window or seat."""

    status_code = 409
    default_message = "This resource was modified by another request. Please try again."


class WindowOverlap(ConflictError):
    default_message = "This availability window overlaps an existing one."


class AlreadyRegistered(PlanningError):
    status_code = 409
    default_message = "Already registered"


AlreadyEnrolled = AlreadyRegistered


class CapacityExceeded(PlanningError):
    status_code = 409
    default_message = "Maximum capacity reached"


class DispatchFailure(PlanningError):
    status_code = 502
    default_message = "Notification could not be sent"


class InvalidRequest(PlanningError, ValueError):
    status_code = 422
    default_message = "Invalid request"


class InvalidTimeError(InvalidRequest):
    default_message = "Invalid time value (expected HH:MM)"

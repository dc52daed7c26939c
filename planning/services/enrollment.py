"""Capacity guard shared by event registration and course-session enrollment."""

from enum import Enum
from typing import Hashable, Iterable

from planning.exceptions import AlreadyRegistered, CapacityExceeded


class EnrollmentCheck(str, Enum):
    OK = "ok"
    ALREADY_ENROLLED = "already_enrolled"
    CAPACITY_EXCEEDED = "capacity_exceeded"


def can_enroll(
    current_participants: Iterable[Hashable],
    capacity: int,
    candidate_id: Hashable,
) -> EnrollmentCheck:
    """Decide whether `candidate_id` may join. Duplicates are reported before capacity."""
    participants = list(current_participants)
    if candidate_id in participants:
        return EnrollmentCheck.ALREADY_ENROLLED
    if len(participants) >= capacity:
        return EnrollmentCheck.CAPACITY_EXCEEDED
    return EnrollmentCheck.OK


def ensure_can_enroll(
    current_participants: Iterable[Hashable],
    capacity: int,
    candidate_id: Hashable,
    already_message: str | None = None,
) -> None:
    """Raise the matching error when `can_enroll` refuses the candidate.

    This is the pre-check only; the seat itself is taken by the repository's
    conditional increment so two callers cannot both pass for the last seat.
    """
    check = can_enroll(current_participants, capacity, candidate_id)
    if check is EnrollmentCheck.ALREADY_ENROLLED:
        raise AlreadyRegistered(already_message)
    if check is EnrollmentCheck.CAPACITY_EXCEEDED:
        raise CapacityExceeded()

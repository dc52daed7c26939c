"""Tests for the capacity guard."""

import pytest

from planning.exceptions import AlreadyRegistered, CapacityExceeded
from planning.services.enrollment import EnrollmentCheck, can_enroll, ensure_can_enroll


class TestCanEnroll:
    """Tests for can_enroll()."""

    def test_room_left(self):
        assert can_enroll(["a"], 2, "b") is EnrollmentCheck.OK

    def test_empty_list(self):
        assert can_enroll([], 1, "a") is EnrollmentCheck.OK

    def test_full(self):
        assert can_enroll(["a", "b"], 2, "c") is EnrollmentCheck.CAPACITY_EXCEEDED

    def test_duplicate(self):
        assert can_enroll(["a"], 5, "a") is EnrollmentCheck.ALREADY_ENROLLED

    def test_duplicate_reported_before_capacity(self):
        """A participant already in a full list is told they are enrolled, not that it is full."""
        assert can_enroll(["a", "b"], 2, "a") is EnrollmentCheck.ALREADY_ENROLLED

    def test_accepts_any_iterable(self):
        assert can_enroll((x for x in ["a"]), 1, "b") is EnrollmentCheck.CAPACITY_EXCEEDED


class TestEnsureCanEnroll:
    """Tests for ensure_can_enroll()."""

    def test_ok_returns_none(self):
        assert ensure_can_enroll([], 1, "a") is None

    def test_full_raises(self):
        with pytest.raises(CapacityExceeded):
            ensure_can_enroll(["a"], 1, "b")

    def test_duplicate_raises_with_message(self):
        with pytest.raises(AlreadyRegistered, match="already in"):
            ensure_can_enroll(["a"], 3, "a", already_message="already in")

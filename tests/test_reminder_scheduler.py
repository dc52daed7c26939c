"""Tests for the reminder sweep."""

import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from planning.models.reminder import ReminderKind
from planning.repository import PlanningRepository
from planning.services.reminder_scheduler import ReminderScheduler
from planning.services.email_service import DispatchResult
from planning.services.reminder_service import ReminderService, compute_due_at, format_when
from tests.conftest import FakeDispatcher

STARTS_AT = datetime(2025, 6, 10, 9, 30)
DUE_AT = datetime(2025, 6, 10, 8, 30)


@pytest_asyncio.fixture
async def reminder(db, config, patient):
    """Committed reminder for `patient`, due 08:30."""
    reminder = await ReminderService(db, config).schedule(
        recipient_id=patient.id,
        kind=ReminderKind.APPOINTMENT,
        target_id=patient.id,
        starts_at=STARTS_AT,
        message="Your appointment is at 09:30.",
    )
    await db.commit()
    return reminder


@pytest.fixture
def scheduler(session_factory, dispatcher, config):
    return ReminderScheduler(session_factory, dispatcher, config)


class TestDueTime:
    """Tests for compute_due_at() and format_when()."""

    def test_one_hour_before(self):
        assert compute_due_at(STARTS_AT, 60) == DUE_AT

    def test_crosses_midnight(self):
        assert compute_due_at(datetime(2025, 6, 10, 0, 30), 60) == datetime(2025, 6, 9, 23, 30)

    def test_format(self):
        assert format_when(STARTS_AT) == "Tuesday, June 10, 2025 at 09:30"


class TestRunSweep:
    """Tests for ReminderScheduler.run_sweep()."""

    @pytest.mark.asyncio
    async def test_not_due_yet(self, db, scheduler, reminder, dispatcher):
        report = await scheduler.run_sweep(now=DUE_AT - timedelta(minutes=1))

        assert report.due == 0
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_due_reminder_delivered_once(self, db, scheduler, reminder, dispatcher, patient):
        report = await scheduler.run_sweep(now=DUE_AT)

        assert report.delivered == 1
        assert dispatcher.sent == [(patient.email, "Reminder", "Your appointment is at 09:30.")]

        await db.refresh(reminder)
        assert reminder.delivered is True
        assert reminder.delivered_at is not None
        assert reminder.claimed_until is None

        again = await scheduler.run_sweep(now=DUE_AT + timedelta(minutes=2))
        assert again.due == 0
        assert len(dispatcher.sent) == 1

    @pytest.mark.asyncio
    async def test_overlapping_sweeps_skip(self, scheduler, reminder, dispatcher):
        first, second = await asyncio.gather(
            scheduler.run_sweep(now=DUE_AT),
            scheduler.run_sweep(now=DUE_AT),
        )

        assert sorted([first.skipped, second.skipped]) == [False, True]
        assert len(dispatcher.sent) == 1

    @pytest.mark.asyncio
    async def test_failure_retried_then_abandoned(self, db, session_factory, config, reminder, patient):
        failing = FakeDispatcher(fail_for={patient.email})
        scheduler = ReminderScheduler(session_factory, failing, config)

        for attempt in range(1, config.reminder_max_attempts + 1):
            report = await scheduler.run_sweep(now=DUE_AT + timedelta(minutes=attempt))
            assert report.failed == 1
            await db.refresh(reminder)
            assert reminder.attempts == attempt
            assert reminder.delivered is False

        assert reminder.abandoned is True
        assert reminder.last_error == "Mailbox unavailable"
        assert report.abandoned == 1

        later = await scheduler.run_sweep(now=DUE_AT + timedelta(hours=1))
        assert later.due == 0

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, db, session_factory, config, reminder, patient):
        flaky = FakeDispatcher(fail_for={patient.email})
        scheduler = ReminderScheduler(session_factory, flaky, config)

        await scheduler.run_sweep(now=DUE_AT)
        flaky.fail_for.clear()
        report = await scheduler.run_sweep(now=DUE_AT + timedelta(minutes=2))

        assert report.delivered == 1
        await db.refresh(reminder)
        assert reminder.delivered is True
        assert reminder.attempts == 1

    @pytest.mark.asyncio
    async def test_raising_dispatcher_counts_as_failure(self, db, session_factory, config, reminder, patient):
        scheduler = ReminderScheduler(session_factory, FakeDispatcher(raise_for={patient.email}), config)

        report = await scheduler.run_sweep(now=DUE_AT)

        assert report.failed == 1
        await db.refresh(reminder)
        assert reminder.last_error == "provider exploded"
        assert reminder.delivered is False

    @pytest.mark.asyncio
    async def test_timeout(self, db, session_factory, config, reminder):
        config = config.model_copy(update={"dispatch_timeout_seconds": 0.05})
        scheduler = ReminderScheduler(session_factory, FakeDispatcher(delay=1), config)

        report = await scheduler.run_sweep(now=DUE_AT)

        assert report.failed == 1
        await db.refresh(reminder)
        assert reminder.delivered is False
        assert "Timed out" in reminder.last_error

    @pytest.mark.asyncio
    async def test_recipient_without_email(self, db, config, scheduler, make_user, dispatcher):
        silent = await make_user(email=None)
        await ReminderService(db, config).schedule(
            recipient_id=silent.id,
            kind=ReminderKind.EVENT,
            target_id=silent.id,
            starts_at=STARTS_AT,
            message="Workshop tonight",
        )
        await db.commit()

        report = await scheduler.run_sweep(now=DUE_AT)

        assert report.no_contact == 1
        assert report.delivered == 0
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_withdrawn_reminder_not_sent(self, db, config, scheduler, reminder, dispatcher):
        await ReminderService(db, config).withdraw(reminder.target_id, reason="Appointment cancelled")
        await db.commit()

        report = await scheduler.run_sweep(now=DUE_AT)

        assert report.due == 0
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_batch_limit(self, db, session_factory, config, patient, dispatcher):
        service = ReminderService(db, config)
        for hour in range(3):
            await service.schedule(
                recipient_id=patient.id,
                kind=ReminderKind.EVENT,
                target_id=patient.id,
                starts_at=STARTS_AT + timedelta(hours=hour),
                message=f"Event {hour}",
            )
        await db.commit()
        scheduler = ReminderScheduler(
            session_factory, dispatcher, config.model_copy(update={"reminder_batch_size": 2})
        )

        first = await scheduler.run_sweep(now=DUE_AT + timedelta(hours=3))
        second = await scheduler.run_sweep(now=DUE_AT + timedelta(hours=3))

        assert (first.delivered, second.delivered) == (2, 1)
        # Earliest due first
        assert [body for _, _, body in dispatcher.sent] == ["Event 0", "Event 1", "Event 2"]


class TestLease:
    """Tests for the per-reminder dispatch lease."""

    @pytest.mark.asyncio
    async def test_second_claim_loses(self, db, reminder):
        repo = PlanningRepository(db)
        until = DUE_AT + timedelta(minutes=5)

        assert await repo.claim_reminder(reminder.id, DUE_AT, until) is True
        assert await repo.claim_reminder(reminder.id, DUE_AT, until) is False

    @pytest.mark.asyncio
    async def test_expired_lease_can_be_taken(self, db, reminder):
        repo = PlanningRepository(db)
        await repo.claim_reminder(reminder.id, DUE_AT, DUE_AT + timedelta(minutes=5))

        later = DUE_AT + timedelta(minutes=6)
        assert await repo.claim_reminder(reminder.id, later, later + timedelta(minutes=5)) is True

    @pytest.mark.asyncio
    async def test_leased_reminder_not_due(self, db, scheduler, reminder, dispatcher):
        """A reminder held by another sweeper is left alone until the lease runs out."""
        await PlanningRepository(db).claim_reminder(reminder.id, DUE_AT, DUE_AT + timedelta(minutes=5))
        await db.commit()
        scheduler.clock = lambda: DUE_AT + timedelta(minutes=1)

        report = await scheduler.run_sweep(now=DUE_AT + timedelta(minutes=1))
        assert report.due == 0
        assert dispatcher.sent == []

        scheduler.clock = lambda: DUE_AT + timedelta(minutes=6)
        report = await scheduler.run_sweep(now=DUE_AT + timedelta(minutes=6))
        assert report.delivered == 1

    @pytest.mark.asyncio
    async def test_late_claim_in_slow_sweep_gets_full_lease(self, db, session_factory, config, patient):
        """A slow first send must not leave the next reminder open to another sweeper."""
        service = ReminderService(db, config)
        for minute in range(2):
            await service.schedule(
                recipient_id=patient.id,
                kind=ReminderKind.APPOINTMENT,
                target_id=patient.id,
                starts_at=STARTS_AT + timedelta(minutes=minute),
                message=f"r{minute}",
            )
        await db.commit()

        clock = {"now": datetime(2025, 6, 10, 9, 0)}
        sends = []
        overlapping_reports = []

        class SweeperDispatcher:
            def __init__(self, name, on_send=None):
                self.name = name
                self.on_send = on_send

            async def send(self, recipient, subject, body):
                sends.append((self.name, body))
                if self.on_send:
                    await self.on_send(body)
                return DispatchResult(success=True)

        other = ReminderScheduler(session_factory, SweeperDispatcher("other"), config)

        async def slow_first_then_overlap(body):
            if body == "r0":
                clock["now"] += timedelta(seconds=400)
            else:
                overlapping_reports.append(await other.run_sweep(now=clock["now"]))

        sweeper = ReminderScheduler(session_factory, SweeperDispatcher("main", slow_first_then_overlap), config)
        sweeper.clock = other.clock = lambda: clock["now"]

        report = await sweeper.run_sweep(now=clock["now"])

        assert report.delivered == 2
        assert [body for _, body in sends].count("r1") == 1
        assert overlapping_reports[0].due == 0


class TestTimeBudget:
    """Tests for the per-sweep time budget."""

    @pytest.mark.asyncio
    async def test_stops_claiming_past_budget(self, db, session_factory, config, patient):
        service = ReminderService(db, config)
        for hour in range(3):
            await service.schedule(
                recipient_id=patient.id,
                kind=ReminderKind.EVENT,
                target_id=patient.id,
                starts_at=STARTS_AT + timedelta(hours=hour),
                message=f"Event {hour}",
            )
        await db.commit()
        config = config.model_copy(update={"reminder_sweep_interval_seconds": 0.1})
        dispatcher = FakeDispatcher(delay=0.2)
        scheduler = ReminderScheduler(session_factory, dispatcher, config)
        now = DUE_AT + timedelta(hours=3)

        first = await scheduler.run_sweep(now=now)
        assert (first.due, first.delivered, first.deferred) == (3, 1, 2)

        second = await scheduler.run_sweep(now=now)
        assert (second.due, second.delivered, second.deferred) == (2, 1, 1)
        assert [body for _, _, body in dispatcher.sent] == ["Event 0", "Event 1"]


class TestBackgroundLoop:
    """Tests for start() and stop()."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler):
        scheduler.start()
        assert scheduler.is_running

        await asyncio.sleep(0.2)
        await scheduler.stop()
        assert not scheduler.is_running

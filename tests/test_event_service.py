"""Tests for event registration and its capacity guard."""

import uuid
from datetime import date, datetime

import pytest
import pytest_asyncio

from planning.exceptions import AlreadyRegistered, CapacityExceeded, ConflictError, InvalidRequest, NotFound
from planning.models.reminder import ReminderKind
from planning.repository import PlanningRepository
from planning.services.event_service import EventService


@pytest.fixture
def service(db, config):
    return EventService(db, config)


@pytest_asyncio.fixture
async def workshop(service):
    """Capacity-2 event on 2025-06-12 at 18:00."""
    return await service.create_event(
        title="Stress management workshop",
        event_date=date(2025, 6, 12),
        start_time="18:00",
        capacity=2,
        duration_minutes=90,
    )


class TestCreateEvent:
    """Tests for EventService.create_event()."""

    @pytest.mark.asyncio
    async def test_starts_empty(self, workshop):
        assert workshop.participant_count == 0
        assert workshop.starts_at == datetime(2025, 6, 12, 18, 0)

    @pytest.mark.asyncio
    async def test_zero_capacity_refused(self, service):
        with pytest.raises(InvalidRequest):
            await service.create_event(title="Empty", event_date=date(2025, 6, 12), start_time="18:00", capacity=0)


class TestRegisterForEvent:
    """Tests for EventService.register_for_event()."""

    @pytest.mark.asyncio
    async def test_fill_then_refuse(self, service, workshop, make_user):
        """Two seats: A and B get in, C is refused, A again is told they are registered."""
        a, b, c = await make_user(), await make_user(), await make_user()

        event = await service.register_for_event(workshop.id, a.id)
        assert event.participant_count == 1

        event = await service.register_for_event(workshop.id, b.id)
        assert event.participant_count == 2

        with pytest.raises(CapacityExceeded):
            await service.register_for_event(workshop.id, c.id)

        with pytest.raises(AlreadyRegistered):
            await service.register_for_event(workshop.id, a.id)

        event = await service.get_event(workshop.id)
        assert event.participant_count == 2
        assert {p.participant_id for p in event.participants} == {a.id, b.id}

    @pytest.mark.asyncio
    async def test_schedules_reminder(self, db, service, workshop, patient):
        await service.register_for_event(workshop.id, patient.id)

        [reminder] = await PlanningRepository(db).list_reminders_for_recipient(patient.id)
        assert reminder.kind == ReminderKind.EVENT.value
        assert reminder.target_id == workshop.id
        assert reminder.due_at == datetime(2025, 6, 12, 17, 0)
        assert "Stress management workshop" in reminder.message

    @pytest.mark.asyncio
    async def test_unknown_event(self, service, patient):
        with pytest.raises(NotFound):
            await service.register_for_event(uuid.uuid4(), patient.id)


class TestCancelRegistration:
    """Tests for EventService.cancel_registration()."""

    @pytest.mark.asyncio
    async def test_frees_seat_and_withdraws_reminder(self, db, service, workshop, make_user):
        a, b, c = await make_user(), await make_user(), await make_user()
        await service.register_for_event(workshop.id, a.id)
        await service.register_for_event(workshop.id, b.id)

        event = await service.cancel_registration(workshop.id, a.id)
        assert event.participant_count == 1

        [reminder] = await PlanningRepository(db).list_reminders_for_recipient(a.id)
        assert reminder.abandoned is True

        event = await service.register_for_event(workshop.id, c.id)
        assert event.participant_count == 2

    @pytest.mark.asyncio
    async def test_not_registered(self, service, workshop, patient):
        with pytest.raises(NotFound):
            await service.cancel_registration(workshop.id, patient.id)

    @pytest.mark.asyncio
    async def test_participants_listing(self, service, workshop, patient):
        await service.register_for_event(workshop.id, patient.id)
        participants = await service.get_participants(workshop.id)
        assert [p.participant_id for p in participants] == [patient.id]


class TestLastSeatRace:
    """Registrations that pass the pre-check but lose at the conditional increment."""

    @pytest_asyncio.fixture
    async def single_seat(self, service):
        return await service.create_event(
            title="One-to-one intro", event_date=date(2025, 6, 13), start_time="10:00", capacity=1
        )

    @pytest.mark.asyncio
    async def test_increment_refused_when_full(self, db, service, single_seat, make_user):
        a, b = await make_user(), await make_user()
        await service.register_for_event(single_seat.id, a.id)

        assert await PlanningRepository(db).compare_and_append_participant(single_seat.id, b.id) is False

        event = await service.get_event(single_seat.id)
        assert event.participant_count == 1
        assert [p.participant_id for p in event.participants] == [a.id]

    @pytest.mark.asyncio
    async def test_stale_precheck_loses_last_seat(self, service, single_seat, make_user, monkeypatch):
        """The pre-check saw a free seat, but another registration took it first."""
        a, b = await make_user(), await make_user()
        await service.register_for_event(single_seat.id, a.id)
        monkeypatch.setattr("planning.services.event_service.ensure_can_enroll", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            await service.register_for_event(single_seat.id, b.id)

        event = await service.get_event(single_seat.id)
        assert event.participant_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_hits_unique_constraint(self, db, service, workshop, patient, monkeypatch):
        await service.register_for_event(workshop.id, patient.id)
        await db.commit()
        monkeypatch.setattr("planning.services.event_service.ensure_can_enroll", lambda *args, **kwargs: None)

        with pytest.raises(AlreadyRegistered):
            await service.register_for_event(workshop.id, patient.id)

        await db.rollback()
        event = await service.get_event(workshop.id)
        assert event.participant_count == 1
        assert len(event.participants) == 1


class TestUpdateEvent:
    """Tests for EventService.update_event()."""

    @pytest.mark.asyncio
    async def test_new_date_reissues_reminders(self, db, service, workshop, make_user):
        a, b = await make_user(), await make_user()
        await service.register_for_event(workshop.id, a.id)
        await service.register_for_event(workshop.id, b.id)

        event = await service.update_event(
            workshop.id, {"event_date": date(2025, 6, 19), "start_time": "19:00"}
        )
        assert event.starts_at == datetime(2025, 6, 19, 19, 0)

        repo = PlanningRepository(db)
        for user in (a, b):
            new, old = await repo.list_reminders_for_recipient(user.id)
            assert new.due_at == datetime(2025, 6, 19, 18, 0)
            assert new.abandoned is False
            assert "Thursday, June 19, 2025 at 19:00" in new.message
            assert old.due_at == datetime(2025, 6, 12, 17, 0)
            assert old.abandoned is True

    @pytest.mark.asyncio
    async def test_title_change_keeps_reminders(self, db, service, workshop, patient):
        await service.register_for_event(workshop.id, patient.id)

        event = await service.update_event(workshop.id, {"title": "Stress workshop", "start_time": "18:00"})
        assert event.title == "Stress workshop"

        [reminder] = await PlanningRepository(db).list_reminders_for_recipient(patient.id)
        assert reminder.abandoned is False

    @pytest.mark.asyncio
    async def test_capacity_below_participants_refused(self, service, workshop, make_user):
        a, b = await make_user(), await make_user()
        await service.register_for_event(workshop.id, a.id)
        await service.register_for_event(workshop.id, b.id)

        with pytest.raises(CapacityExceeded):
            await service.update_event(workshop.id, {"capacity": 1})

    @pytest.mark.asyncio
    async def test_raised_capacity_opens_seats(self, service, workshop, make_user):
        a, b, c = await make_user(), await make_user(), await make_user()
        await service.register_for_event(workshop.id, a.id)
        await service.register_for_event(workshop.id, b.id)

        await service.update_event(workshop.id, {"capacity": 3})
        event = await service.register_for_event(workshop.id, c.id)
        assert event.participant_count == 3

    @pytest.mark.asyncio
    async def test_missing_event(self, service):
        with pytest.raises(NotFound):
            await service.update_event(uuid.uuid4(), {"title": "Nothing"})


class TestDeleteEvent:
    """Tests for EventService.delete_event()."""

    @pytest.mark.asyncio
    async def test_deletes_and_withdraws_reminders(self, db, service, workshop, patient):
        await service.register_for_event(workshop.id, patient.id)

        await service.delete_event(workshop.id)

        assert await service.get_event(workshop.id) is None
        [reminder] = await PlanningRepository(db).list_reminders_for_recipient(patient.id)
        assert reminder.abandoned is True

    @pytest.mark.asyncio
    async def test_missing_event(self, service):
        with pytest.raises(NotFound):
            await service.delete_event(uuid.uuid4())

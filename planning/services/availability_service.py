"""Availability ledger - psychologist windows and their free/booked status."""

import logging
from datetime import date, datetime, time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from planning.exceptions import ConflictError, InvalidTimeError, NotFound, WindowOverlap
from planning.models.availability import AvailabilityWindow, WindowStatus
from planning.repository import PlanningRepository

logger = logging.getLogger(__name__)

CLOCK_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_clock(value: time | str) -> time:
    """Parse a clock value ("HH:MM" or "HH:MM:SS")."""
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in CLOCK_FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise InvalidTimeError(f"Invalid time value: {value!r} (expected HH:MM)")


class AvailabilityService:
    """Service class for availability window operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = PlanningRepository(db)

    async def add_window(
        self, owner_id: UUID, day: date, start: time | str, end: time | str
    ) -> AvailabilityWindow:
        """Declare a new free window; windows of one owner never overlap on a date."""
        start_time = parse_clock(start)
        end_time = parse_clock(end)
        if start_time >= end_time:
            raise InvalidTimeError("Window start must be before its end")

        for existing in await self.repo.list_windows(owner_id=owner_id, day=day):
            if start_time < existing.end_time and existing.start_time < end_time:
                raise WindowOverlap(
                    f"Overlaps window {existing.start_time:%H:%M}-{existing.end_time:%H:%M}"
                )

        return await self.repo.create_window(
            owner_id=owner_id,
            date=day,
            start_time=start_time,
            end_time=end_time,
            status=WindowStatus.FREE.value,
        )

    async def get_window(self, window_id: UUID) -> AvailabilityWindow | None:
        return await self.repo.get_window(window_id)

    async def list_windows(
        self,
        owner_id: UUID | None = None,
        day: date | None = None,
        status: WindowStatus | None = None,
    ) -> list[AvailabilityWindow]:
        return await self.repo.list_windows(owner_id=owner_id, day=day, status=status)

    async def update_window(
        self,
        window_id: UUID,
        day: date | None = None,
        start: time | str | None = None,
        end: time | str | None = None,
    ) -> AvailabilityWindow:
        """Move or resize a free window. Booked windows stay as they are."""
        window = await self.repo.get_window(window_id)
        if not window:
            raise NotFound("Availability window not found")
        if window.status == WindowStatus.BOOKED.value:
            raise ConflictError("Cannot modify a booked availability window")

        new_day = day or window.date
        start_time = parse_clock(start) if start is not None else window.start_time
        end_time = parse_clock(end) if end is not None else window.end_time
        if start_time >= end_time:
            raise InvalidTimeError("Window start must be before its end")

        for existing in await self.repo.list_windows(owner_id=window.owner_id, day=new_day):
            if existing.id == window.id:
                continue
            if start_time < existing.end_time and existing.start_time < end_time:
                raise WindowOverlap(
                    f"Overlaps window {existing.start_time:%H:%M}-{existing.end_time:%H:%M}"
                )

        return await self.repo.update_window(
            window, {"date": new_day, "start_time": start_time, "end_time": end_time}
        )

    async def delete_window(self, window_id: UUID) -> AvailabilityWindow:
        window = await self.repo.get_window(window_id)
        if not window:
            raise NotFound("Availability window not found")
        if window.status == WindowStatus.BOOKED.value:
            raise ConflictError("Cannot delete a booked availability window")
        await self.repo.delete_window(window)
        return window

    async def find_free_window(
        self, owner_id: UUID, day: date, at: time | str
    ) -> AvailabilityWindow | None:
        return await self.repo.get_availability(owner_id, day, parse_clock(at))

    async def mark_booked(self, window_id: UUID) -> None:
        """free -> booked as one conditional update; losing the race raises ConflictError."""
        claimed = await self.repo.compare_and_set_window_status(
            window_id, WindowStatus.FREE, WindowStatus.BOOKED
        )
        if not claimed:
            logger.info(f"Window {window_id} is no longer free")
            raise ConflictError("This time slot was just booked by someone else.")

    async def mark_free(self, owner_id: UUID, day: date, window_id: UUID | None = None) -> bool:
        """booked -> free for the owner+date window. No match is a no-op."""
        window = await self.repo.find_booked_window(owner_id, day, window_id)
        if not window:
            logger.info(f"No booked window for {owner_id} on {day}, nothing to release")
            return False
        return await self.repo.compare_and_set_window_status(
            window.id, WindowStatus.BOOKED, WindowStatus.FREE
        )

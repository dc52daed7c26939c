"""Reminder service - creating, withdrawing and reading reminders."""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from planning.config import Settings, settings as default_settings
from planning.exceptions import NotFound
from planning.models.reminder import Reminder, ReminderKind
from planning.repository import PlanningRepository


def compute_due_at(starts_at: datetime, lead_minutes: int) -> datetime:
    """When a reminder fires: `lead_minutes` before the start."""
    return starts_at - timedelta(minutes=lead_minutes)


def format_when(moment: datetime) -> str:
    """Human-readable date, e.g. "Tuesday, June 10, 2025 at 09:30"."""
    return moment.strftime("%A, %B %d, %Y") + " at " + moment.strftime("%H:%M")


class ReminderService:
    """Service class for reminder operations."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        self.db = db
        self.repo = PlanningRepository(db)
        self.config = config or default_settings

    async def schedule(
        self,
        recipient_id: UUID,
        kind: ReminderKind,
        target_id: UUID,
        starts_at: datetime,
        message: str,
    ) -> Reminder:
        """Create a pending reminder due `reminder_lead_minutes` before `starts_at`."""
        return await self.repo.create_reminder(
            recipient_id=recipient_id,
            kind=kind.value,
            target_id=target_id,
            message=message,
            due_at=compute_due_at(starts_at, self.config.reminder_lead_minutes),
            delivered=False,
            read=False,
        )

    async def withdraw(
        self, target_id: UUID, recipient_id: UUID | None = None, reason: str = ""
    ) -> int:
        """Abandon pending reminders whose appointment or registration went away."""
        return await self.repo.abandon_reminders_for_target(target_id, recipient_id, reason)

    async def get_recipient_reminders(self, recipient_id: UUID) -> list[Reminder]:
        """Most recent first."""
        return await self.repo.list_reminders_for_recipient(recipient_id)

    async def mark_read(self, reminder_id: UUID) -> Reminder:
        reminder = await self.repo.mark_reminder_read(reminder_id)
        if not reminder:
            raise NotFound("Notification not found")
        return reminder

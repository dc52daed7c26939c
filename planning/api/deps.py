from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from planning.database import get_db
from planning.services.email_service import EmailDispatcher, NotificationDispatcher
from planning.services.reminder_scheduler import ReminderScheduler


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """Process-wide email dispatcher."""
    return EmailDispatcher()


def get_scheduler(request: Request) -> ReminderScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Reminder scheduler is not configured")
    return scheduler


DBSession = Annotated[AsyncSession, Depends(get_db)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
Scheduler = Annotated[ReminderScheduler, Depends(get_scheduler)]

"""
Standalone reminder worker
Runs the reminder sweep loop outside the API process

    python -m planning.worker
"""

import asyncio
import logging
from pathlib import Path

# Load .env file FIRST before importing settings
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

import logfire

from planning.config import settings
from planning.database import AsyncSessionLocal, close_db, init_db
from planning.services.email_service import EmailDispatcher
from planning.services.reminder_scheduler import ReminderScheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

if settings.logfire_token:
    logfire.configure(
        token=settings.logfire_token,
        service_name="planning-reminder-worker",
        environment=settings.app_env,
    )


async def run_reminder_worker():
    """Create tables if needed and sweep until interrupted."""
    await init_db()
    scheduler = ReminderScheduler(AsyncSessionLocal, EmailDispatcher(), settings)
    try:
        await scheduler.run_forever()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(run_reminder_worker())

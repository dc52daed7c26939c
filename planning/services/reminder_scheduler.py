"""
Reminder scheduler
Periodically delivers due reminders, each exactly once
"""

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from uuid import UUID

import logfire
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planning.config import Settings, settings as default_settings
from planning.repository import PlanningRepository
from planning.services.email_service import NotificationDispatcher, send_with_timeout

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Reminder"


@dataclass
class SweepReport:
    due: int = 0
    delivered: int = 0
    failed: int = 0
    no_contact: int = 0
    contended: int = 0
    abandoned: int = 0
    deferred: int = 0
    skipped: bool = False


class ReminderScheduler:
    """
    Runs reminder sweeps on a fixed interval.

    A sweep picks undelivered reminders whose due time has passed, takes a
    lease on each one with a conditional update, sends it and flips
    `delivered` in its own commit. Failures release the lease and count an
    attempt; after `reminder_max_attempts` the reminder is abandoned.
    Sweeps never overlap within a process; the lease keeps sweepers in
    different processes apart. A sweep stops claiming once it has run for
    the sweep interval or the lease length, whichever is shorter, and leaves
    the rest to the next one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher,
        config: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.config = config or default_settings
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        # Wall clock for leases and delivery stamps
        self.clock = datetime.now

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_sweep(self, now: datetime | None = None) -> SweepReport:
        """One pass over due reminders. Returns immediately if a pass is in progress."""
        if self._lock.locked():
            logger.info("⏭️ Previous reminder sweep still running, skipping")
            return SweepReport(skipped=True)

        async with self._lock:
            return await self._sweep(now or self.clock())

    @property
    def time_budget(self) -> float:
        return min(
            self.config.reminder_sweep_interval_seconds,
            self.config.reminder_claim_seconds,
        )

    async def _sweep(self, now: datetime) -> SweepReport:
        logger.info("🔄 Checking for due reminders...")
        report = SweepReport()
        started = time.monotonic()

        async with self.session_factory() as db:
            repo = PlanningRepository(db)
            due = await repo.query_due_reminders(
                now, limit=self.config.reminder_batch_size, lease_now=self.clock()
            )
            await db.commit()

            if not due:
                logger.info("✅ No due reminders")
                return report

            report.due = len(due)
            logger.info(f"📧 Processing {len(due)} due reminders")

            # Plain values: a rollback below expires every loaded instance
            jobs = [(r.id, r.recipient_id, r.message) for r in due]
            for index, (reminder_id, recipient_id, message) in enumerate(jobs):
                if time.monotonic() - started >= self.time_budget:
                    report.deferred = len(jobs) - index
                    logger.warning(
                        f"⏳ Sweep ran past {self.time_budget}s, "
                        f"leaving {report.deferred} reminders for the next one"
                    )
                    break
                await self._deliver(db, repo, reminder_id, recipient_id, message, report)

        logger.info(
            f"✅ Reminder sweep done: {report.delivered} delivered, "
            f"{report.failed} failed, {report.contended} held elsewhere, {report.deferred} deferred"
        )
        logfire.info("reminder_sweep", **asdict(report))
        return report

    async def _deliver(
        self,
        db: AsyncSession,
        repo: PlanningRepository,
        reminder_id: UUID,
        recipient_id: UUID,
        message: str,
        report: SweepReport,
    ) -> None:
        # Lease starts at the claim, not at the start of the sweep
        claimed_at = self.clock()
        lease_until = claimed_at + timedelta(seconds=self.config.reminder_claim_seconds)
        claimed = await repo.claim_reminder(reminder_id, claimed_at, lease_until)
        await db.commit()
        if not claimed:
            report.contended += 1
            return

        try:
            recipient = await repo.get_user(recipient_id)
            if not recipient or not recipient.email:
                report.no_contact += 1
                await self._record_failure(db, repo, reminder_id, "Recipient has no contact address", report)
                return

            result = await send_with_timeout(
                self.dispatcher,
                recipient.email,
                REMINDER_SUBJECT,
                message,
                self.config.dispatch_timeout_seconds,
            )
            if not result.success:
                await self._record_failure(db, repo, reminder_id, result.error or "Dispatch failed", report)
                return

            # Committed right away so a crash later in the sweep cannot resend it
            await repo.mark_reminder_delivered(reminder_id, self.clock())
            await db.commit()
            report.delivered += 1
            logger.info(f"✅ Reminder {reminder_id} delivered to {recipient.email}")

        except Exception as e:
            logger.error(f"❌ Error processing reminder {reminder_id}: {e}")
            await db.rollback()
            await self._record_failure(db, repo, reminder_id, str(e), report)

    async def _record_failure(
        self,
        db: AsyncSession,
        repo: PlanningRepository,
        reminder_id: UUID,
        error: str,
        report: SweepReport,
    ) -> None:
        reminder = await repo.record_reminder_failure(
            reminder_id, error, self.config.reminder_max_attempts
        )
        await db.commit()
        report.failed += 1

        if reminder and reminder.abandoned:
            report.abandoned += 1
            logger.error(
                f"❌ Giving up on reminder {reminder_id} after {reminder.attempts} attempts: {error}"
            )
            logfire.error("reminder_abandoned", reminder_id=str(reminder_id), error=error)
        else:
            logger.warning(f"⚠️ Reminder {reminder_id} not delivered, will retry: {error}")

    async def run_forever(self) -> None:
        """Sweep every `reminder_sweep_interval_seconds` until cancelled."""
        interval = self.config.reminder_sweep_interval_seconds
        logger.info(f"🚀 Starting reminder scheduler (every {interval}s)...")

        while True:
            try:
                await self.run_sweep()
            except Exception as e:
                logger.error(f"❌ Error in reminder sweep: {e}")
            await asyncio.sleep(interval)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("👋 Reminder scheduler stopped")

import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime, ForeignKey, Text, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column
from planning.database import Base


class ReminderKind(str, Enum):
    """What a reminder points at."""
    APPOINTMENT = "appointment"
    EVENT = "event"


class Reminder(Base):
    """One-time notification fired before an appointment or event starts."""

    __tablename__ = "reminders"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    due_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # false -> true exactly once, by the reminder scheduler only
    delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    abandoned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Lease held by the sweep currently dispatching this reminder
    claimed_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    __table_args__ = (
        Index("ix_reminders_due", "delivered", "abandoned", "due_at"),
    )

    @property
    def is_pending(self) -> bool:
        return not self.delivered and not self.abandoned

    def __repr__(self) -> str:
        return f"<Reminder {self.kind} {self.target_id} due={self.due_at}>"

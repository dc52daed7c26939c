import uuid
from datetime import datetime, date, time
from enum import Enum
from sqlalchemy import String, DateTime, Date, Time, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from planning.database import Base


class WindowStatus(str, Enum):
    """Availability window status enum."""
    FREE = "free"
    BOOKED = "booked"


class AvailabilityWindow(Base):
    """A psychologist's declared time interval on a given date."""

    __tablename__ = "availability_windows"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    # Only written through the availability ledger's conditional updates
    status: Mapped[str] = mapped_column(
        String(20),
        default=WindowStatus.FREE.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        Index("ix_availability_owner_date", "owner_id", "date"),
    )

    def covers(self, at: time) -> bool:
        """True when `at` falls inside [start_time, end_time)."""
        return self.start_time <= at < self.end_time

    def __repr__(self) -> str:
        return f"<AvailabilityWindow {self.date} {self.start_time}-{self.end_time} {self.status}>"

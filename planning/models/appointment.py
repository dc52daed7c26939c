import uuid
from datetime import datetime, date, time
from enum import Enum
from sqlalchemy import String, DateTime, Date, Time, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from planning.database import Base


class AppointmentStatus(str, Enum):
    """Appointment status enum."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Appointment(Base):
    """Appointment between a patient and a psychologist."""

    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    psychologist_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Window claimed at booking time
    window_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("availability_windows.id", ondelete="SET NULL"),
        nullable=True,
    )
    appointment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    appointment_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.PENDING.value,
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

    @property
    def is_live(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED.value

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, self.appointment_time)

    def __repr__(self) -> str:
        return f"<Appointment {self.appointment_date} {self.appointment_time}>"

import uuid
from datetime import datetime, date, time
from sqlalchemy import String, DateTime, Date, Time, ForeignKey, Text, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from planning.database import Base


class Event(Base):
    """Capacity-bounded group activity patients can register for."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Kept equal to len(participants); the conditional increment on this
    # column is what serializes registrations for the last seat
    participant_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    # Relationship
    participants: Mapped[list["EventParticipant"]] = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventParticipant.joined_at",
        lazy="selectin",
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.event_date, self.start_time)

    def __repr__(self) -> str:
        return f"<Event {self.title} {self.event_date}>"


class EventParticipant(Base):
    """Registration of a patient to an event."""

    __tablename__ = "event_participants"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    event: Mapped["Event"] = relationship("Event", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("event_id", "participant_id", name="unique_event_participant"),
    )

    def __repr__(self) -> str:
        return f"<EventParticipant {self.participant_id}>"

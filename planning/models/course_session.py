import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from planning.database import Base


class CourseSessionStatus(str, Enum):
    """Course session status enum."""
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CourseSession(Base):
    """A scheduled run of a course with enrolled participants."""

    __tablename__ = "course_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    # Course catalog lives outside this service
    course_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CourseSessionStatus.SCHEDULED.value,
    )
    participant_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationship
    participants: Mapped[list["SessionParticipant"]] = relationship(
        "SessionParticipant",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionParticipant.enrolled_at",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<CourseSession {self.title} {self.start_at}>"


class SessionParticipant(Base):
    """Enrollment of a user in a course session."""

    __tablename__ = "session_participants"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("course_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    notified: Mapped[bool] = mapped_column(Boolean, default=False)
    reminders_sent: Mapped[int] = mapped_column(Integer, default=0)

    session: Mapped["CourseSession"] = relationship("CourseSession", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="unique_session_participant"),
    )

    def __repr__(self) -> str:
        return f"<SessionParticipant {self.user_id}>"

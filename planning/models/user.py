import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from planning.database import Base


class UserRole(str, Enum):
    """User role enum."""
    PATIENT = "patient"
    PSYCHOLOGIST = "psychologist"
    ADMIN = "admin"


class User(Base):
    """User model - patients and psychologists, reachable by email."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.PATIENT.value,
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

    def __repr__(self) -> str:
        return f"<User {self.email or self.id}>"

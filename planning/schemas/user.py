from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from uuid import UUID
from planning.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema."""
    email: EmailStr | None = Field(None, description="Contact address for notifications")
    name: str | None = Field(None, max_length=100, description="User name")
    role: UserRole = Field(UserRole.PATIENT, description="patient, psychologist or admin")


class UserCreate(UserBase):
    """Schema for creating a user."""
    pass


class UserUpdate(BaseModel):
    """Schema for updating a user."""
    email: EmailStr | None = None
    name: str | None = Field(None, max_length=100)


class UserResponse(UserBase):
    """Schema for user response."""
    id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

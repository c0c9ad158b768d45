"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from backend.core.roles import UserRole

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class SafeUser(BaseModel):
    """User representation without secret fields, safe to send to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None
    role: UserRole
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> "SafeUser":
        """Build from a ``User`` row, copying only public fields."""
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserLogin(BaseModel):
    """User login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class ProfileUpdate(BaseModel):
    """Changes a user may make to their own profile."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        """Normalize name by stripping whitespace; blank clears it."""
        if isinstance(v, str):
            return v.strip() or None
        return v


class PasswordChange(BaseModel):
    """Self-service password change."""

    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordChange":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class PermissionsResponse(BaseModel):
    """Permissions granted to the current user's role."""

    role: UserRole
    permissions: list[str]
    manageable_roles: list[UserRole]

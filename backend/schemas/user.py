"""User management schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from backend.core.roles import DEFAULT_ROLE, UserRole
from backend.schemas.auth import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _normalize_name(v: str | None) -> str | None:
    if isinstance(v, str):
        return v.strip() or None
    return v


class UserCreate(BaseModel):
    """User creation request schema."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    confirm_password: str | None = None
    name: str | None = Field(default=None, max_length=255)
    role: UserRole = DEFAULT_ROLE

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        """Normalize name by stripping whitespace."""
        return _normalize_name(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "UserCreate":
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserUpdate(BaseModel):
    """Partial user update; only fields that are sent are changed."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    name: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        """Normalize name by stripping whitespace."""
        return _normalize_name(v)

    @field_validator("email", "password", "role")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class UserListQuery(BaseModel):
    """Query parameters for listing users."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    search: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None
    sort: Literal["name", "email", "created_at"] = "created_at"
    order: Literal["asc", "desc"] = "desc"

    @field_validator("search", mode="before")
    @classmethod
    def normalize_search(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip() or None
        return v

"""User model."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum, String, Uuid

from backend.core.roles import DEFAULT_ROLE, UserRole
from backend.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """User account for authentication and role-based access control.

    ``email`` is stored lowercased; ``password_hash`` never leaves the server.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=32,
            values_callable=lambda roles: [role.value for role in roles],
            validate_strings=True,
        ),
        default=DEFAULT_ROLE,
        nullable=False,
        index=True,
    )
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

"""Database models package."""

from backend.models.user import User

__all__ = ["User"]

"""Pydantic schemas package."""

from backend.schemas.auth import PasswordChange, PermissionsResponse, ProfileUpdate, SafeUser, UserLogin
from backend.schemas.common import APIResponse, PaginatedResponse, Pagination
from backend.schemas.user import UserCreate, UserListQuery, UserUpdate

__all__ = [
    "APIResponse",
    "PaginatedResponse",
    "Pagination",
    "PasswordChange",
    "PermissionsResponse",
    "ProfileUpdate",
    "SafeUser",
    "UserCreate",
    "UserListQuery",
    "UserLogin",
    "UserUpdate",
]

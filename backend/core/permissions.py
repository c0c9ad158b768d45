"""Permission matrix: named permissions mapped to the roles allowed to use them."""

from types import MappingProxyType
from typing import Iterable, Mapping

from backend.core.roles import UserRole, parse_role

_ALL_ROLES = frozenset(UserRole)
_STAFF = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.EDITOR})
_ADMINS = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})
_SUPER_ADMIN_ONLY = frozenset({UserRole.SUPER_ADMIN})

PERMISSIONS: Mapping[str, frozenset[UserRole]] = MappingProxyType(
    {
        # User management
        "users.view": _STAFF,
        "users.create": _ADMINS,
        "users.edit": _ADMINS,
        "users.delete": _SUPER_ADMIN_ONLY,
        # System settings
        "settings.view": _ADMINS,
        "settings.edit": _SUPER_ADMIN_ONLY,
        # Dashboard
        "dashboard.view": _ALL_ROLES,
        # Own profile
        "profile.view": _ALL_ROLES,
        "profile.edit": _ALL_ROLES,
        # Content
        "content.view": _STAFF,
        "content.edit": _STAFF,
        "content.create": _STAFF,
        "content.delete": _ADMINS,
    }
)


def has_permission(role: UserRole | str, permission: str) -> bool:
    """Check a single permission. Unknown roles and permissions are denied."""
    parsed = parse_role(role)
    allowed_roles = PERMISSIONS.get(permission)
    if parsed is None or allowed_roles is None:
        return False
    return parsed in allowed_roles


def has_any_permission(role: UserRole | str, permissions: Iterable[str]) -> bool:
    """True if ``role`` holds at least one of ``permissions``."""
    return any(has_permission(role, permission) for permission in permissions)


def has_all_permissions(role: UserRole | str, permissions: Iterable[str]) -> bool:
    """True if ``role`` holds every one of ``permissions``; an empty request is denied."""
    requested = list(permissions)
    if not requested:
        return False
    return all(has_permission(role, permission) for permission in requested)


def get_role_permissions(role: UserRole | str) -> list[str]:
    """All permissions granted to ``role``, in matrix order."""
    return [permission for permission in PERMISSIONS if has_permission(role, permission)]

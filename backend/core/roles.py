"""Role hierarchy and management authority.

Roles form a fixed total order::

    viewer < member < editor < admin < super_admin

The order answers "who outranks whom". Which roles an actor may create,
edit, delete or assign is a separate, explicit table (``MANAGEABLE_ROLES``)
so business rules can deny management even across a valid rank gap.
Resource permissions live in ``backend.core.permissions``.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class UserRole(str, Enum):
    """User role, declared lowest to highest."""

    VIEWER = "viewer"
    MEMBER = "member"
    EDITOR = "editor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


DEFAULT_ROLE = UserRole.VIEWER
TOP_ROLE = UserRole.SUPER_ADMIN

ROLE_HIERARCHY: Mapping[UserRole, int] = MappingProxyType(
    {role: rank for rank, role in enumerate(UserRole, start=1)}
)

# actor role -> roles the actor may create, edit, delete and assign
MANAGEABLE_ROLES: Mapping[UserRole, frozenset[UserRole]] = MappingProxyType(
    {
        UserRole.SUPER_ADMIN: frozenset(UserRole),
        UserRole.ADMIN: frozenset({UserRole.EDITOR, UserRole.MEMBER, UserRole.VIEWER}),
        UserRole.EDITOR: frozenset({UserRole.MEMBER, UserRole.VIEWER}),
        UserRole.MEMBER: frozenset(),
        UserRole.VIEWER: frozenset(),
    }
)


def parse_role(value: UserRole | str | None) -> UserRole | None:
    """Return the matching ``UserRole``, or None for anything unrecognized."""
    if isinstance(value, UserRole):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None


def role_rank(role: UserRole | str) -> int:
    """Position of ``role`` in the hierarchy; 0 for unknown roles."""
    parsed = parse_role(role)
    if parsed is None:
        return 0
    return ROLE_HIERARCHY[parsed]


def is_higher_role(role_a: UserRole | str, role_b: UserRole | str) -> bool:
    """True when ``role_a`` strictly outranks ``role_b``.

    A role never outranks itself, and an unknown role never outranks anything.
    """
    if parse_role(role_a) is None:
        return False
    return role_rank(role_a) > role_rank(role_b)


def can_manage_user(actor_role: UserRole | str, target_role: UserRole | str) -> bool:
    """Whether ``actor_role`` may manage a user holding (or being given) ``target_role``."""
    actor = parse_role(actor_role)
    target = parse_role(target_role)
    if actor is None or target is None:
        return False
    return target in MANAGEABLE_ROLES[actor]


def manageable_roles(actor_role: UserRole | str) -> list[UserRole]:
    """Roles ``actor_role`` may assign, highest first."""
    actor = parse_role(actor_role)
    if actor is None:
        return []
    allowed = MANAGEABLE_ROLES[actor]
    return [role for role in reversed(UserRole) if role in allowed]

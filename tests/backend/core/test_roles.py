"""Tests for the role hierarchy and management authority."""

import pytest

from backend.core.roles import (
    DEFAULT_ROLE,
    MANAGEABLE_ROLES,
    ROLE_HIERARCHY,
    TOP_ROLE,
    UserRole,
    can_manage_user,
    is_higher_role,
    manageable_roles,
    parse_role,
    role_rank,
)

ORDERED_ROLES = [UserRole.VIEWER, UserRole.MEMBER, UserRole.EDITOR, UserRole.ADMIN, UserRole.SUPER_ADMIN]


def test_hierarchy_order():
    """Test that ranks follow viewer < member < editor < admin < super_admin."""
    ranks = [ROLE_HIERARCHY[role] for role in ORDERED_ROLES]

    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ranks)
    assert DEFAULT_ROLE == UserRole.VIEWER
    assert TOP_ROLE == UserRole.SUPER_ADMIN


def test_hierarchy_is_read_only():
    with pytest.raises(TypeError):
        ROLE_HIERARCHY[UserRole.VIEWER] = 99


def test_parse_role():
    assert parse_role("admin") == UserRole.ADMIN
    assert parse_role(UserRole.EDITOR) == UserRole.EDITOR
    assert parse_role("Admin") is None
    assert parse_role("owner") is None
    assert parse_role(None) is None
    assert parse_role(3) is None


def test_role_rank_unknown_is_zero():
    assert role_rank("owner") == 0
    assert role_rank("viewer") == 1


@pytest.mark.parametrize("role", ORDERED_ROLES)
def test_role_never_outranks_itself(role: UserRole):
    assert is_higher_role(role, role) is False


def test_is_higher_role_is_strict_order():
    for i, lower in enumerate(ORDERED_ROLES):
        for higher in ORDERED_ROLES[i + 1 :]:
            assert is_higher_role(higher, lower) is True
            assert is_higher_role(lower, higher) is False


def test_unknown_roles_never_outrank():
    assert is_higher_role("owner", "viewer") is False
    assert is_higher_role("viewer", "owner") is True


def test_super_admin_manages_everyone():
    for role in ORDERED_ROLES:
        assert can_manage_user(UserRole.SUPER_ADMIN, role) is True


def test_admin_manages_strictly_below_admin():
    assert can_manage_user("admin", "super_admin") is False
    assert can_manage_user("admin", "admin") is False
    for role in (UserRole.EDITOR, UserRole.MEMBER, UserRole.VIEWER):
        assert can_manage_user("admin", role) is True


def test_editor_manages_bottom_tiers_only():
    assert can_manage_user("editor", "member") is True
    assert can_manage_user("editor", "viewer") is True
    assert can_manage_user("editor", "editor") is False
    assert can_manage_user("editor", "admin") is False


@pytest.mark.parametrize("actor", [UserRole.MEMBER, UserRole.VIEWER])
def test_bottom_tiers_manage_nobody(actor: UserRole):
    for role in ORDERED_ROLES:
        assert can_manage_user(actor, role) is False


def test_unknown_roles_manage_nothing():
    assert can_manage_user("owner", "viewer") is False
    assert can_manage_user("super_admin", "owner") is False


def test_management_authority_is_monotonic_in_rank():
    """Test that a higher role can manage at least what any lower role can."""
    for higher in ORDERED_ROLES:
        for lower in ORDERED_ROLES:
            if is_higher_role(higher, lower):
                assert MANAGEABLE_ROLES[lower] <= MANAGEABLE_ROLES[higher]


def test_nobody_but_top_role_manages_peers():
    for role in ORDERED_ROLES:
        if role != TOP_ROLE:
            assert can_manage_user(role, role) is False


def test_manageable_roles_highest_first():
    assert manageable_roles("super_admin") == list(reversed(ORDERED_ROLES))
    assert manageable_roles("admin") == [UserRole.EDITOR, UserRole.MEMBER, UserRole.VIEWER]
    assert manageable_roles("viewer") == []
    assert manageable_roles("owner") == []

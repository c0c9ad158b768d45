"""User management router."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from backend.core.dependencies import get_user_manager, require_permission
from backend.core.user_management import UserManager
from backend.schemas.auth import SafeUser
from backend.schemas.common import APIResponse, PaginatedResponse, Pagination
from backend.schemas.user import UserCreate, UserListQuery, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=PaginatedResponse[SafeUser])
def list_users(
    params: Annotated[UserListQuery, Query()],
    actor: Annotated[SafeUser, Depends(require_permission("users.view"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> PaginatedResponse[SafeUser]:
    """List users with paging, search, role filter and sorting.

    Args:
        params: Paging, search, filter and sort parameters
        actor: Current user (requires ``users.view``)
        manager: User management service

    Returns:
        PaginatedResponse[SafeUser]: One page of users and paging metadata
    """
    users, total = manager.list_users(params)
    logger.info(f"Listed {len(users)} of {total} users for user {actor.id}")
    return PaginatedResponse(
        data=[SafeUser.from_user(user) for user in users],
        pagination=Pagination.build(page=params.page, limit=params.limit, total=total),
        message="Users retrieved",
    )


@router.post("", response_model=APIResponse[SafeUser], status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    actor: Annotated[SafeUser, Depends(require_permission("users.create"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[SafeUser]:
    """Create a new user.

    Args:
        user_data: Email, password, optional name and role
        actor: Current user (requires ``users.create``)
        manager: User management service

    Returns:
        APIResponse[SafeUser]: The created user

    Raises:
        ForbiddenError: If the actor may not assign the requested role
        ConflictError: If the email is already registered
    """
    user = manager.create_user(actor, user_data)
    return APIResponse(success=True, data=SafeUser.from_user(user), message="User created")


@router.get("/{user_id}", response_model=APIResponse[SafeUser])
def get_user(
    user_id: UUID,
    actor: Annotated[SafeUser, Depends(require_permission("users.view"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[SafeUser]:
    """Get a specific user by ID."""
    user = manager.get_user(user_id)
    return APIResponse(success=True, data=SafeUser.from_user(user))


@router.patch("/{user_id}", response_model=APIResponse[SafeUser])
def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    actor: Annotated[SafeUser, Depends(require_permission("users.edit"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[SafeUser]:
    """Update a user.

    Args:
        user_id: User UUID
        user_data: Fields to change (email, password, name, role)
        actor: Current user (requires ``users.edit``)
        manager: User management service

    Returns:
        APIResponse[SafeUser]: Updated user information

    Raises:
        ForbiddenError: If the actor cannot manage the user's current or new role
        ConflictError: If the new email is already in use
    """
    user = manager.update_user(actor, user_id, user_data)
    return APIResponse(success=True, data=SafeUser.from_user(user), message="User updated")


@router.delete("/{user_id}", response_model=APIResponse[None])
def delete_user(
    user_id: UUID,
    actor: Annotated[SafeUser, Depends(require_permission("users.delete"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[None]:
    """Delete a user.

    Raises:
        ForbiddenError: On self-deletion, missing authority or the last super admin
        NotFoundError: If the user does not exist
    """
    manager.delete_user(actor, user_id)
    return APIResponse(success=True, message="User deleted")

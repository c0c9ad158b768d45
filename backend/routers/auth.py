"""Authentication router."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from backend.config import Settings
from backend.core.dependencies import (
    enforce_login_rate_limit,
    get_app_settings,
    get_current_user,
    get_optional_user,
    get_token_codec,
    get_user_manager,
    require_permission,
)
from backend.core.permissions import get_role_permissions
from backend.core.roles import manageable_roles
from backend.core.security import TokenCodec
from backend.core.session import clear_session_cookie, set_session_cookie
from backend.core.user_management import UserManager
from backend.schemas.auth import PasswordChange, PermissionsResponse, ProfileUpdate, SafeUser, UserLogin
from backend.schemas.common import APIResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=APIResponse[SafeUser],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(enforce_login_rate_limit)],
)
def login(
    credentials: UserLogin,
    response: Response,
    manager: Annotated[UserManager, Depends(get_user_manager)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> APIResponse[SafeUser]:
    """Authenticate user and start a session.

    Args:
        credentials: User login data (email, password)
        response: Outgoing response the session cookie is attached to
        manager: User management service
        codec: Session token codec
        settings: Application settings

    Returns:
        APIResponse[SafeUser]: The signed-in user

    Raises:
        InvalidCredentialsError: If email or password is invalid
    """
    user = manager.authenticate(credentials.email, credentials.password)
    token = codec.issue(user.id, user.role)
    set_session_cookie(response, token, settings)

    logger.info(f"User {user.id} signed in")
    return APIResponse(success=True, data=SafeUser.from_user(user), message="Login successful")


@router.post("/logout", response_model=APIResponse[None])
def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> APIResponse[None]:
    """End the session. Succeeds whether or not a session existed."""
    clear_session_cookie(response, settings)
    return APIResponse(success=True, message="Logout successful")


@router.get("/me", response_model=APIResponse[SafeUser])
def read_current_user(
    user: Annotated[SafeUser | None, Depends(get_optional_user)],
) -> APIResponse[SafeUser]:
    """Return the signed-in user, or ``data: null`` when nobody is signed in."""
    if user is None:
        return APIResponse(success=True, data=None, message="Not signed in")
    return APIResponse(success=True, data=user)


@router.get("/me/permissions", response_model=APIResponse[PermissionsResponse])
def read_current_permissions(
    user: Annotated[SafeUser, Depends(get_current_user)],
) -> APIResponse[PermissionsResponse]:
    """List the permissions and assignable roles of the signed-in user."""
    return APIResponse(
        success=True,
        data=PermissionsResponse(
            role=user.role,
            permissions=get_role_permissions(user.role),
            manageable_roles=manageable_roles(user.role),
        ),
    )


@router.patch("/me", response_model=APIResponse[SafeUser])
def update_current_user(
    profile: ProfileUpdate,
    user: Annotated[SafeUser, Depends(require_permission("profile.edit"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[SafeUser]:
    """Update the signed-in user's own profile."""
    updated = manager.update_profile(user, profile)
    return APIResponse(success=True, data=SafeUser.from_user(updated), message="Profile updated")


@router.post("/me/password", response_model=APIResponse[None])
def change_password(
    data: PasswordChange,
    user: Annotated[SafeUser, Depends(require_permission("profile.edit"))],
    manager: Annotated[UserManager, Depends(get_user_manager)],
) -> APIResponse[None]:
    """Change the signed-in user's password.

    Raises:
        InvalidInputError: If the current password is wrong
    """
    manager.change_password(user, data)
    return APIResponse(success=True, message="Password changed")

"""FastAPI dependencies for authentication and authorization.

Long-lived components (password hasher, token codec, session resolver,
login rate limiter) are built once by ``create_app`` and stored on
``app.state``; the dependencies below hand them to request handlers.
"""

from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.config import Settings
from backend.core.errors import ForbiddenError, UnauthorizedError
from backend.core.permissions import has_all_permissions, has_any_permission, has_permission
from backend.core.rate_limit import FixedWindowRateLimiter, client_address
from backend.core.security import PasswordHasher, TokenCodec
from backend.core.session import SessionResolver
from backend.core.store import UserStore
from backend.core.user_management import UserManager
from backend.database import get_db
from backend.schemas.auth import SafeUser


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_session_resolver(request: Request) -> SessionResolver:
    return request.app.state.session_resolver


def get_login_rate_limiter(request: Request) -> FixedWindowRateLimiter | None:
    return request.app.state.login_rate_limiter


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return UserStore(db)


def get_user_manager(
    store: Annotated[UserStore, Depends(get_user_store)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> UserManager:
    return UserManager(store, hasher)


def get_optional_user(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
) -> SafeUser | None:
    """Dependency: the signed-in user, or None for anonymous requests."""
    return resolver.resolve(request, store)


def get_current_user(
    user: Annotated[SafeUser | None, Depends(get_optional_user)],
) -> SafeUser:
    """Dependency: require a signed-in user. Raises 401 otherwise."""
    if user is None:
        raise UnauthorizedError("Not authenticated or session expired")
    return user


def require_permission(permission: str) -> Callable[..., SafeUser]:
    """Build a dependency requiring ``permission`` for the current user's live role.

    Example:
        ```python
        @router.get("")
        def list_users(actor: Annotated[SafeUser, Depends(require_permission("users.view"))]):
            ...
        ```
    """

    def _require_permission(user: Annotated[SafeUser, Depends(get_current_user)]) -> SafeUser:
        if not has_permission(user.role, permission):
            raise ForbiddenError("Insufficient permissions")
        return user

    return _require_permission


def require_any_permission(*permissions: str) -> Callable[..., SafeUser]:
    """Build a dependency requiring at least one of ``permissions``."""

    def _require_any_permission(user: Annotated[SafeUser, Depends(get_current_user)]) -> SafeUser:
        if not has_any_permission(user.role, permissions):
            raise ForbiddenError("Insufficient permissions")
        return user

    return _require_any_permission


def require_all_permissions(*permissions: str) -> Callable[..., SafeUser]:
    """Build a dependency requiring every one of ``permissions``."""

    def _require_all_permissions(user: Annotated[SafeUser, Depends(get_current_user)]) -> SafeUser:
        if not has_all_permissions(user.role, permissions):
            raise ForbiddenError("Insufficient permissions")
        return user

    return _require_all_permissions


def enforce_login_rate_limit(
    request: Request,
    limiter: Annotated[FixedWindowRateLimiter | None, Depends(get_login_rate_limiter)],
) -> None:
    """Dependency: throttle login attempts per client address."""
    if limiter is not None:
        limiter.check(client_address(request))

"""User management: the write boundary for accounts.

Every mutation goes through ``UserManager``, which checks management
authority and the account invariants:

1. an actor cannot delete their own account;
2. the last ``super_admin`` cannot be deleted or demoted;
3. an actor cannot assign a role they are not allowed to manage;
4. an actor cannot edit or delete a user whose current role they cannot manage.

Rule 2 is checked inside the store's DELETE or UPDATE statement, so two
concurrent requests cannot both remove the last holder. Every violation
raises ``ForbiddenError`` and leaves nothing written.
"""

import logging
from uuid import UUID

from backend.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
)
from backend.core.roles import TOP_ROLE, UserRole, can_manage_user
from backend.core.security import PasswordHasher
from backend.core.store import DuplicateEmailError, LastRoleHolderError, UserStore
from backend.models.user import User
from backend.schemas.auth import PasswordChange, ProfileUpdate, SafeUser
from backend.schemas.user import UserCreate, UserListQuery, UserUpdate

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "Email already registered"


class UserManager:
    """Account operations for a single request."""

    def __init__(self, store: UserStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    def authenticate(self, email: str, password: str) -> User:
        """Check credentials and return the matching user.

        Unknown emails and wrong passwords raise the same error. A password
        check still runs for unknown emails so both paths cost the same.

        Raises:
            InvalidCredentialsError: If the credentials do not match a user
        """
        user = self.store.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info(f"Failed login attempt for {email}")
            raise InvalidCredentialsError()
        return user

    def get_user(self, user_id: UUID | str) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def list_users(self, params: UserListQuery) -> tuple[list[User], int]:
        return self.store.list_users(params)

    def create_user(self, actor: SafeUser, data: UserCreate) -> User:
        """Create a user on behalf of ``actor``.

        Raises:
            ForbiddenError: If ``actor`` may not assign ``data.role``
            ConflictError: If the email is already registered
        """
        if not can_manage_user(actor.role, data.role):
            logger.warning(f"User {actor.id} ({actor.role.value}) denied creating a {data.role.value}")
            raise ForbiddenError("Not authorized to assign this role")
        if self.store.email_taken(data.email):
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        try:
            user = self.store.create(
                email=data.email,
                password_hash=self.hasher.hash(data.password),
                role=data.role,
                name=data.name,
            )
        except DuplicateEmailError as e:
            raise ConflictError(EMAIL_TAKEN_MESSAGE) from e

        logger.info(f"User {actor.id} created user {user.id} with role {user.role.value}")
        return user

    def update_user(self, actor: SafeUser, user_id: UUID, data: UserUpdate) -> User:
        """Apply a partial update to another user.

        Raises:
            NotFoundError: If the target user does not exist
            ForbiddenError: If authority or the last-super-admin rule forbids it
            ConflictError: If the new email belongs to another user
        """
        target = self.get_user(user_id)
        if not can_manage_user(actor.role, target.role):
            logger.warning(f"User {actor.id} ({actor.role.value}) denied editing user {target.id}")
            raise ForbiddenError("Not authorized to manage this user")

        fields = data.model_dump(exclude_unset=True)
        changes = {}

        if "role" in fields:
            new_role = fields["role"]
            if not can_manage_user(actor.role, new_role):
                logger.warning(f"User {actor.id} ({actor.role.value}) denied assigning {new_role.value}")
                raise ForbiddenError("Not authorized to assign this role")
            changes["role"] = new_role

        if "email" in fields:
            if self.store.email_taken(fields["email"], exclude_id=target.id):
                raise ConflictError(EMAIL_TAKEN_MESSAGE)
            changes["email"] = fields["email"]

        if "name" in fields:
            changes["name"] = fields["name"]

        if "password" in fields:
            changes["password_hash"] = self.hasher.hash(fields["password"])

        if not changes:
            return target

        try:
            user = self.store.update(target, keep_role=TOP_ROLE, **changes)
        except DuplicateEmailError as e:
            raise ConflictError(EMAIL_TAKEN_MESSAGE) from e
        except LastRoleHolderError as e:
            raise ForbiddenError("Cannot demote the last super admin") from e

        logger.info(f"User {actor.id} updated user {user.id} ({', '.join(sorted(changes))})")
        return user

    def delete_user(self, actor: SafeUser, user_id: UUID) -> None:
        """Delete another user.

        Raises:
            ForbiddenError: On self-deletion, missing authority, or the last super admin
            NotFoundError: If the target user does not exist
        """
        if str(actor.id) == str(user_id):
            raise ForbiddenError("You cannot delete your own account")

        target = self.get_user(user_id)
        if not can_manage_user(actor.role, target.role):
            logger.warning(f"User {actor.id} ({actor.role.value}) denied deleting user {target.id}")
            raise ForbiddenError("Not authorized to delete this user")
        try:
            self.store.delete(target, keep_role=TOP_ROLE)
        except LastRoleHolderError as e:
            raise ForbiddenError("Cannot delete the last super admin") from e
        logger.info(f"User {actor.id} deleted user {user_id}")

    def update_profile(self, actor: SafeUser, data: ProfileUpdate) -> User:
        """Update the actor's own display name."""
        user = self.get_user(actor.id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return user
        return self.store.update(user, **fields)

    def change_password(self, actor: SafeUser, data: PasswordChange) -> User:
        """Replace the actor's own password after checking the current one."""
        user = self.get_user(actor.id)
        if not self.hasher.verify(data.current_password, user.password_hash):
            raise InvalidInputError("Current password is incorrect")
        user = self.store.update(user, password_hash=self.hasher.hash(data.new_password))
        logger.info(f"User {user.id} changed their password")
        return user

    def seed_initial_super_admin(self, email: str, password: str, name: str | None = None) -> User | None:
        """Create the first super admin. Does nothing once any user exists.

        Returns:
            The created user, or None if the store was not empty
        """
        if self.store.count() > 0:
            return None
        user = self.store.create(
            email=email,
            password_hash=self.hasher.hash(password),
            role=UserRole.SUPER_ADMIN,
            name=name,
        )
        logger.info(f"Seeded initial super admin {user.id}")
        return user


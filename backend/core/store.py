"""Credential store: persistence of user records over a SQLAlchemy session."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from backend.core.roles import UserRole
from backend.models.user import User
from backend.schemas.user import UserListQuery

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "name": User.name,
    "email": User.email,
    "created_at": User.created_at,
}

_UPDATABLE_FIELDS = frozenset({"email", "name", "role", "password_hash"})


class StoreError(Exception):
    """Base exception for credential store operations."""

    pass


class DuplicateEmailError(StoreError):
    """Raised when a write would give two users the same email."""

    pass


class LastRoleHolderError(StoreError):
    """Raised when a write would leave a protected role with no holder."""

    pass


def normalize_email(email: str) -> str:
    """Canonical stored form of an email address (case-insensitive uniqueness)."""
    return email.strip().lower()


def _parse_id(user_id: UUID | str) -> UUID | None:
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except (TypeError, ValueError):
        return None


class UserStore:
    """User persistence for a single request-scoped session.

    Every mutating call commits exactly once, so a logical change is applied
    entirely or not at all.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: UUID | str) -> User | None:
        """Load a user by ID; malformed IDs simply match nothing."""
        parsed = _parse_id(user_id)
        if parsed is None:
            return None
        return self.db.query(User).filter(User.id == parsed).first()

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def email_taken(self, email: str, exclude_id: UUID | None = None) -> bool:
        query = self.db.query(User.id).filter(User.email == normalize_email(email))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def count(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    def count_by_role(self, role: UserRole) -> int:
        return self.db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    def create(self, email: str, password_hash: str, role: UserRole, name: str | None = None) -> User:
        """Insert a new user.

        Args:
            email: Email address (normalized before storage)
            password_hash: Output of the password hasher
            role: Role to grant
            name: Optional display name

        Returns:
            User: The persisted user

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            name=name,
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, keep_role: UserRole | None = None, **changes: Any) -> User:
        """Apply ``changes`` to ``user`` in one commit.

        Args:
            user: User to change
            keep_role: When set, refuse to move the last holder of this role off it
            **changes: New values for email, name, role or password_hash

        Raises:
            DuplicateEmailError: If the new email belongs to another user
            LastRoleHolderError: If the change would leave ``keep_role`` unheld
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
        if keep_role is not None and "role" in changes and changes["role"] != keep_role:
            self._lock_role_holders(keep_role)
            result = self.db.execute(
                update(User)
                .where(
                    User.id == user.id,
                    or_(User.role != keep_role, self._other_holders(keep_role, user.id) > 0),
                )
                .values(role=changes["role"])
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise LastRoleHolderError(f"Cannot remove the last {keep_role.value}")
        for field, value in changes.items():
            setattr(user, field, value)
        self._commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User, keep_role: UserRole | None = None) -> None:
        """Delete ``user``.

        With ``keep_role`` set, the holder count is checked inside the DELETE
        itself, so two concurrent deletions cannot both remove the last holders.

        Raises:
            LastRoleHolderError: If ``user`` is the last holder of ``keep_role``
        """
        if keep_role is None:
            self.db.delete(user)
            self.db.commit()
            return

        self._lock_role_holders(keep_role)
        result = self.db.execute(
            delete(User)
            .where(
                User.id == user.id,
                or_(User.role != keep_role, self._other_holders(keep_role, user.id) > 0),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise LastRoleHolderError(f"Cannot remove the last {keep_role.value}")
        if user in self.db:
            self.db.expunge(user)
        self.db.commit()

    def list_users(self, params: UserListQuery) -> tuple[list[User], int]:
        """Return one page of users matching ``params`` and the total match count."""
        query = self.db.query(User)
        if params.search:
            query = query.filter(
                or_(
                    User.name.icontains(params.search, autoescape=True),
                    User.email.icontains(params.search, autoescape=True),
                )
            )
        if params.role is not None:
            query = query.filter(User.role == params.role)

        total = query.count()

        column = _SORT_COLUMNS[params.sort]
        ordering = column.asc() if params.order == "asc" else column.desc()
        users = (
            query.order_by(ordering, User.id.asc())
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
            .all()
        )
        return users, total

    def _other_holders(self, role: UserRole, user_id: UUID):
        holder = aliased(User, name="holder")
        return (
            select(func.count(holder.id))
            .where(holder.role == role, holder.id != user_id)
            .scalar_subquery()
        )

    def _lock_role_holders(self, role: UserRole) -> None:
        """Row-lock every holder of ``role`` until the transaction ends.

        SQLite has no row locks; its single writer serializes the guarded
        statements instead.
        """
        self.db.query(User.id).filter(User.role == role).with_for_update().all()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("Rejected write: email already registered")
            raise DuplicateEmailError("Email already registered") from e

"""Security utilities for password hashing and session tokens."""

import base64
import binascii
import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID, uuid4

from bcrypt import checkpw, gensalt, hashpw
from jose import JWTError, jwt

from backend.config import Settings, is_usable_secret
from backend.core.roles import UserRole, parse_role

logger = logging.getLogger(__name__)

_SEGMENT_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenConfigurationError(RuntimeError):
    """Raised when a token is requested but no usable signing secret is configured."""


class PasswordHasher:
    """Salted bcrypt hashing with self-contained verification.

    The password is reduced to a base64 SHA-256 digest before bcrypt so that
    bcrypt's 72-byte input limit never truncates long passwords. The bcrypt
    output embeds the per-password salt and work factor.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash: str | None = None

    @staticmethod
    def _prepare(password: str) -> bytes:
        return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password as a string

        Example:
            ```python
            hasher = PasswordHasher(rounds=12)
            stored = hasher.hash("my_password")
            ```
        """
        return hashpw(self._prepare(password), gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed_password: str | None) -> bool:
        """Verify a password against a stored hash.

        bcrypt compares digests in constant time. A malformed stored hash
        fails closed instead of raising.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hash to compare against

        Returns:
            True if password matches, False otherwise
        """
        if not isinstance(password, str) or not hashed_password:
            return False
        try:
            return checkpw(self._prepare(password), hashed_password.encode("utf-8"))
        except (ValueError, TypeError):
            logger.warning("Stored password hash is malformed; rejecting verification")
            return False

    def verify_dummy(self, password: str) -> bool:
        """Spend one verification's worth of work against a throwaway hash.

        Used when there is no stored hash to check, so that the response time
        does not reveal whether an account exists. Always False.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(uuid4().hex)
        self.verify(password, self._dummy_hash)
        return False


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    subject_id: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime
    token_id: str


class TokenCodec:
    """Issues and verifies signed, time-limited session tokens (HS256 JWT).

    The codec refuses to work without a real signing secret: ``issue``
    raises ``TokenConfigurationError`` and ``verify`` rejects every token.
    """

    def __init__(
        self,
        secret_key: str | None,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.algorithm,
            expires_delta=timedelta(minutes=settings.session_expire_minutes),
        )

    @property
    def configured(self) -> bool:
        """True when the signing secret is present and not a placeholder."""
        return is_usable_secret(self._secret_key)

    def issue(self, subject_id: UUID | str, role: UserRole | str) -> str:
        """Create a session token for a user.

        Args:
            subject_id: ID of the user the token identifies
            role: Role held by the user at issuance

        Returns:
            Encoded JWT token string

        Raises:
            TokenConfigurationError: If no usable signing secret is configured
        """
        if not self.configured:
            raise TokenConfigurationError("Session signing secret is not configured")
        parsed_role = parse_role(role)
        if parsed_role is None:
            raise ValueError(f"Unknown role: {role!r}")

        now = self._clock()
        payload: dict[str, Any] = {
            "sub": str(subject_id),
            "role": parsed_role.value,
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires_delta).timestamp()),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str | None) -> TokenClaims | None:
        """Decode and verify a session token.

        Checks structure, signature against the current secret, expiry and
        claim shape. Any failure yields None.

        Args:
            token: JWT token string to verify

        Returns:
            TokenClaims for a valid token, or None
        """
        if not self.configured:
            logger.error("Session signing secret is not configured; rejecting token")
            return None
        if not isinstance(token, str) or not _is_well_formed(token):
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                # exp is checked against self._clock below. Marking it required
                # here would turn jose's wall-clock expiry check back on.
                options={
                    "verify_exp": False,
                    "require_iat": True,
                    "require_sub": True,
                    "require_jti": True,
                },
            )
        except JWTError:
            return None

        expires_at = _timestamp(payload.get("exp"))
        issued_at = _timestamp(payload.get("iat"))
        role = parse_role(payload.get("role"))
        subject_id = payload.get("sub")
        token_id = payload.get("jti")
        if expires_at is None or issued_at is None or role is None:
            return None
        if not subject_id or not isinstance(token_id, str):
            return None
        if self._clock() >= expires_at:
            return None

        return TokenClaims(
            subject_id=subject_id,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=token_id,
        )


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _is_well_formed(token: str) -> bool:
    """Three non-empty segments, each canonical unpadded base64url."""
    parts = token.split(".")
    if len(parts) != 3:
        return False
    for part in parts:
        if not _SEGMENT_PATTERN.fullmatch(part) or len(part) % 4 == 1:
            return False
        try:
            raw = base64.urlsafe_b64decode(part + "=" * (-len(part) % 4))
        except (binascii.Error, ValueError):
            return False
        # Reject encodings whose unused trailing bits are set
        if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != part:
            return False
    return True

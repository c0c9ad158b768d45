"""Session cookie handling and resolution of the current user."""

import logging

from starlette.requests import Request
from starlette.responses import Response

from backend.config import Settings
from backend.core.security import TokenCodec
from backend.core.store import UserStore
from backend.schemas.auth import SafeUser

logger = logging.getLogger(__name__)

# request.state flag read by the cookie-clearing middleware
CLEAR_SESSION_FLAG = "clear_session_cookie"


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Attach the session token as an HTTP-only cookie."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_expire_minutes * 60,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def mark_session_invalid(request: Request) -> None:
    """Ask for the session cookie to be cleared on whatever response is sent."""
    setattr(request.state, CLEAR_SESSION_FLAG, True)


def session_marked_invalid(request: Request) -> bool:
    return bool(getattr(request.state, CLEAR_SESSION_FLAG, False))


class SessionResolver:
    """Turns the session cookie on a request into the current user.

    Absence of a user is a normal result (None), never an exception. Tokens
    that fail verification, or that name a user who no longer exists, are
    discarded: the request is flagged so the cookie is cleared on the way out.
    """

    def __init__(self, token_codec: TokenCodec, cookie_name: str):
        self.token_codec = token_codec
        self.cookie_name = cookie_name

    def resolve(self, request: Request | None, store: UserStore, static: bool = False) -> SafeUser | None:
        """Return the signed-in user for ``request``, or None.

        Args:
            request: Incoming request carrying the session cookie
            store: Credential store used to load the live user record
            static: When True, return None without reading request data
                (for rendering contexts that have no request cookies)

        Returns:
            SafeUser with the user's current role, or None
        """
        if static or request is None:
            return None

        token = request.cookies.get(self.cookie_name)
        if not token:
            return None

        claims = self.token_codec.verify(token)
        if claims is None:
            logger.info("Discarding invalid or expired session token")
            mark_session_invalid(request)
            return None

        user = store.get_by_id(claims.subject_id)
        if user is None:
            logger.info(f"Discarding session token for missing user {claims.subject_id}")
            mark_session_invalid(request)
            return None

        return SafeUser.from_user(user)

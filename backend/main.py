import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from backend.config import Settings, get_settings
from backend.core.errors import register_exception_handlers
from backend.core.rate_limit import FixedWindowRateLimiter
from backend.core.security import PasswordHasher, TokenCodec
from backend.core.session import SessionResolver, clear_session_cookie, session_marked_invalid
from backend.routers import auth, users

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and its long-lived auth components."""
    settings = settings or get_settings()
    configure_logging(settings)
    if not settings.secret_key_configured:
        logger.error("SECRET_KEY is missing or a placeholder; logins will fail until it is set")

    app = FastAPI(title=settings.app_name)

    token_codec = TokenCodec.from_settings(settings)
    app.state.settings = settings
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.token_codec = token_codec
    app.state.session_resolver = SessionResolver(token_codec, settings.session_cookie_name)
    app.state.login_rate_limiter = (
        FixedWindowRateLimiter(
            max_requests=settings.login_rate_limit_attempts,
            window_seconds=settings.login_rate_limit_window_seconds,
        )
        if settings.login_rate_limit_enabled
        else None
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Take the client address from X-Forwarded-For only when sent by a trusted proxy
    if settings.forwarded_allow_ips:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)

    @app.middleware("http")
    async def clear_invalid_session_cookie(request: Request, call_next):
        """Clear the session cookie when the request carried a rejected token."""
        response = await call_next(request)
        if session_marked_invalid(request):
            clear_session_cookie(response, settings)
        return response

    register_exception_handlers(app, settings)

    # Include routers
    app.include_router(auth.router)
    app.include_router(users.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "admin_console_backend"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        loop="asyncio",  # Explicitly use asyncio instead of auto (which tries uvloop)
    )

"""Database connection and session management."""

from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.config import settings


def _engine_options(database_url: str) -> dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    options: dict[str, Any] = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": settings.database_echo,
    }
    if database_url.startswith("sqlite"):
        # SQLite connections are shared with FastAPI's worker threads
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = 10  # Number of connections to maintain
        options["max_overflow"] = 20  # Maximum number of connections beyond pool_size
    return options


# Create database engine with connection pooling
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Base class for declarative models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session.

    Yields:
        Session: SQLAlchemy database session

    Example:
        ```python
        from backend.database import get_db

        @app.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
        ```
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

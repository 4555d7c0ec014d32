from datetime import datetime, timezone

from sqlalchemy import create_engine, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.types import TypeDecorator
from dashauth.core.config import get_settings

settings = get_settings()


def _connect_args(database_url: str) -> dict:
    """Connection-level timeouts so a stuck database fails the request instead of hanging it."""
    if database_url.startswith("postgresql"):
        return {
            "connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        }
    return {}


# Create SQLAlchemy engine
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before using them
    pool_size=10,  # Connection pool size
    max_overflow=20,  # Allow up to 20 connections beyond pool_size
    pool_timeout=settings.DB_CONNECT_TIMEOUT_SECONDS,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware DateTime that always comes back in UTC.

    Backends without native timezone support (SQLite in tests) return naive
    values; those are stored as UTC and re-tagged on load.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            if dialect.name == "sqlite":
                value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_db():
    """
    Dependency function to get database session.
    Used in FastAPI endpoints with Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database.

    Tables are created by Alembic ("alembic upgrade head"); this only makes
    sure every model is imported and registered on Base.metadata.
    """
    from dashauth.models import credential, account_info, login_attempt  # noqa: F401

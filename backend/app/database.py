"""
Database configuration and session management.

PostgreSQL in production (row locks and LISTEN/NOTIFY need it); SQLite is
accepted for local runs and tests, where FOR UPDATE is a no-op and the
unique constraints alone catch version races.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# Create database engine
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    pool_pre_ping=True,
    echo=settings.DEBUG
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()


def get_db():
    """
    Dependency function to get database session.

    Rolls back on unhandled exceptions so a failed request never leaves
    a half-applied multi-row update behind (e.g. sibling approval flags
    cleared without the target being approved). Routes handle their own
    commits.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

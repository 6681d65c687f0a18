from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from config import get_settings
import os
import logging

logger = logging.getLogger(__name__)

settings = get_settings()

# SECURITY: Disable SQL echo in production to prevent sensitive data leakage
DB_ECHO = settings.DB_ECHO


def build_engine(database_url: str = "", echo: bool = False):
    """Create an engine for the given URL (SQLite file when empty)"""
    if not database_url:
        sqlite_file = os.path.join(os.path.dirname(__file__), "hospital_dev.db")
        database_url = f"sqlite:///{sqlite_file}"

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live on a single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        logger.info(f"Using SQLite database: {database_url}")
        return create_engine(database_url, echo=echo, **kwargs)

    # Production configuration with connection pooling
    return create_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Handle stale connections
        pool_recycle=300,  # Recycle connections every 5 minutes
    )


engine = build_engine(settings.DATABASE_URL, DB_ECHO)


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)

"""
Database configuration and session management
"""

from typing import Generator

from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel, create_engine
import structlog

from shopsync.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def build_engine(url: str, echo: bool = False):
    """Create an engine; SQLite connections get foreign key enforcement"""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(url, echo=echo, connect_args=connect_args)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory for batch jobs (auditor, scripts)
session_factory = sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


def init_db():
    """Initialize database tables (local development only, Alembic owns the schema)"""
    import shopsync.models  # noqa: F401  registers table metadata

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_session() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    with session_factory() as session:
        yield session

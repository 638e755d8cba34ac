from pathlib import Path
from typing import Generator
import tempfile

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import structlog

from chatops.config.settings import settings

logger = structlog.get_logger()

_FALLBACK_DB_NAME = "eztest_chatops_fallback.db"


def build_engine(db_url: str) -> Engine:
    """Engine for ``db_url``. In-memory sqlite shares one connection across threads."""
    url = make_url(db_url)
    if url.drivername.startswith("sqlite"):
        if not url.database or url.database == ":memory:":
            return create_engine(db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
        return create_engine(db_url, connect_args={"check_same_thread": False})
    return create_engine(db_url, pool_pre_ping=True)


def resolve_database_url(configured_url: str) -> str:
    """Create the sqlite parent directory; use a temp file when it is not writable."""
    try:
        url = make_url(configured_url)
    except ArgumentError as e:
        logger.error("Invalid database url", error=str(e))
        raise

    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return configured_url

    db_path = Path(url.database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        marker = db_path.parent / ".writable_test"
        marker.write_text("ok")
        marker.unlink()
    except OSError as e:
        fallback = f"sqlite:///{(Path(tempfile.gettempdir()) / _FALLBACK_DB_NAME).as_posix()}"
        logger.error("Sqlite directory not writable; using fallback", path=str(db_path), fallback=fallback, error=str(e))
        return fallback

    logger.info("Using sqlite database", path=str(db_path))
    return configured_url


engine = build_engine(resolve_database_url(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_database() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping_database(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error("Database ping failed", error=str(e))
        return False


def create_tables():
    """Create the binding table (and, on a fresh sqlite file, the shared tables it references)"""
    from chatops.models.database import Base

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error("Failed to create database tables", error=str(e))
        raise

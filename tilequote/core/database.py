"""
Database connection and session management.
The engine is created lazily so importing the package never touches disk.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tilequote.core.models import Base
from tilequote.core.paths import AppPaths, app_paths
from tilequote.core.logging_config import get_logger

logger = get_logger(__name__)

_session_factory: Optional[sessionmaker] = None


def database_url(path=None) -> str:
    return f"sqlite:///{path or app_paths.database_path}"


def make_session_factory(url: str) -> sessionmaker:
    """Create an engine for url and a session factory bound to it."""
    engine = create_engine(url, echo=False)
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False  # Prevent detached instance errors
    )


def get_session_factory() -> sessionmaker:
    """Session factory for the application database."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(database_url())
    return _session_factory


def init_db(session_factory: Optional[sessionmaker] = None):
    """Initialize database tables."""
    factory = session_factory or get_session_factory()
    engine = factory.kw['bind']
    logger.info(f"Initializing database at: {engine.url}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully.")


def get_db_info(paths: AppPaths = app_paths):
    """Database and data locations, as reported by the init command."""
    return {
        "database_url": database_url(paths.database_path),
        "database_exists": paths.database_path.exists(),
        "data_dir": str(paths.data_dir),
        "exports_dir": str(paths.exports_dir),
    }

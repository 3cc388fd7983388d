"""
Database setup - SQLAlchemy engine for the remote premium store.

The connection is configured from two required environment variables:
DATABASE_URL (driver, host and database, without the secret) and
DATABASE_PASSWORD. The engine is created on first use and reused for the
life of the process.
"""
import logging
import os
import threading
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from models import Base

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_engine = None
_session_factory = None


class ConfigurationError(RuntimeError):
    """Raised when the store credentials are missing."""


def database_url():
    """Build the SQLAlchemy URL from the environment."""
    url = os.getenv("DATABASE_URL")
    password = os.getenv("DATABASE_PASSWORD")

    missing = [k for k, v in {"DATABASE_URL": url, "DATABASE_PASSWORD": password}.items() if not v]
    if missing:
        raise ConfigurationError(f"Missing required database settings: {', '.join(missing)}")

    return make_url(url).set(password=password)


def get_engine():
    """Get or create the engine singleton."""
    global _engine, _session_factory
    if _engine is None:
        with _lock:
            if _engine is None:
                url = database_url()
                logger.info("Connecting to premium store at %s", url.render_as_string(hide_password=True))
                engine = create_engine(
                    url,
                    pool_pre_ping=True,
                    echo=os.getenv("DATABASE_ECHO", "").lower() in ("1", "true", "yes"),
                )
                _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
                _engine = engine
    return _engine


def get_session_factory():
    get_engine()
    return _session_factory


def reset_engine():
    """Dispose the engine so the next access reconnects."""
    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


def init_db(engine=None):
    """Create all tables. Only used by the loader."""
    Base.metadata.create_all(bind=engine or get_engine())


@contextmanager
def session_scope(session_factory=None):
    """Yield a read session and always close it."""
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
    finally:
        db.close()


def get_db():
    """Dependency for FastAPI - yields DB session."""
    with session_scope() as db:
        yield db

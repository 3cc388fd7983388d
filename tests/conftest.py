"""Shared fixtures: an in-memory SQLite premium store."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import database
from models import Base, Premium


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def configured_store(monkeypatch, engine, session_factory):
    """Make the process-wide store point at the test database."""
    monkeypatch.setattr(database, "_engine", engine)
    monkeypatch.setattr(database, "_session_factory", session_factory)
    return session_factory


@pytest.fixture
def add_premium(db):
    """Insert a premium row; profile defaults to ZH 2025 adult 300 standard with accident."""

    def _add(insurer_id, monthly_premium_chf, **overrides):
        values = dict(
            canton="ZH",
            year=2025,
            age_band="adult",
            franchise_chf=300,
            model_type="standard",
            accident_covered=True,
            tariff_name=None,
        )
        values.update(overrides)
        row = Premium(insurer_id=insurer_id, monthly_premium_chf=monthly_premium_chf, **values)
        db.add(row)
        db.commit()
        return row

    return _add

"""Pytest configuration and shared fixtures."""

import os

# Set test environment variables before importing the package
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_TOKEN"] = ""
os.environ["REQUIRE_VALUE"] = "0"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scoped_settings.core.facade import Settings
from scoped_settings.core.registry import SettingsRegistry
from scoped_settings.core.repository import SettingRepository
from scoped_settings.database import Base, enable_sqlite_savepoints
from scoped_settings import models  # noqa: F401

REGISTRY_DATA = {
    "catalog": {
        "vendor": "acme",
        "plugin": "catalog",
        "paths": {
            "page_size": {"type": "integer", "default": 10},
            "banner_text": {"type": "text"},
            "launch_date": {"type": "date"},
        },
    },
    "shipping": {
        "vendor": "acme",
        "plugin": "shipping",
        "paths": ["free_threshold", "carriers"],
    },
}


@pytest.fixture
def test_db_engine():
    """Create test database engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    return sessionmaker(bind=test_db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def test_db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def repository(test_db_session) -> SettingRepository:
    return SettingRepository(test_db_session)


@pytest.fixture
def registry() -> SettingsRegistry:
    return SettingsRegistry.from_mapping(REGISTRY_DATA)


@pytest.fixture
def settings(repository) -> Settings:
    """Unregistered handle for acme/catalog, no declared paths."""
    return Settings("acme", "catalog", repository)

"""Shared fixtures: throwaway SQLite databases and a test client."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from meetup.config import AppConfig
from meetup.db import create_engine_from_url
from meetup.main import create_app
from meetup.store import RegistrationStore

# The table as it looked before speakers were added.
LEGACY_TABLE_SQL = """
CREATE TABLE registrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL DEFAULT (datetime('now')),
    name TEXT NOT NULL,
    email TEXT NOT NULL
)
"""


@pytest.fixture
def database_url(tmp_path):
    """URL of a SQLite file that only lives for one test."""
    return f"sqlite:///{tmp_path / 'data' / 'meetup.db'}"


@pytest.fixture
def engine(database_url):
    engine = create_engine_from_url(database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """A store whose schema is fully up to date."""
    store = RegistrationStore(engine)
    store.ensure_schema()
    return store


@pytest.fixture
def legacy_engine(engine):
    """An engine whose table predates the speaker columns, holding one row."""
    with engine.begin() as conn:
        conn.execute(text(LEGACY_TABLE_SQL))
        conn.execute(
            text("INSERT INTO registrations (name, email) VALUES (:name, :email)"),
            {"name": "Early Bird", "email": "early@example.com"},
        )
    return engine


@pytest.fixture
def app_config(database_url, tmp_path):
    return AppConfig(
        database_url=database_url,
        poll_interval_ms=50,
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def client(app_config):
    """Test client with the app's startup and shutdown hooks run."""
    app = create_app(app_config)
    with TestClient(app) as client:
        yield client

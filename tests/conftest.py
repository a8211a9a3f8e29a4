"""
Shared test fixtures for the program directory scraper.

Provides:
- db_session: In-memory SQLite session with all tables created
- client: FastAPI TestClient with DB dependency override
- extraction_client: Mock ExtractionClient with async methods
- program_data: camelCase payload for a complete, valid program
"""

import os

# Force sqlite for tests; must be set before any src imports.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from unittest.mock import AsyncMock, Mock
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.entities.base import Base

# Import ALL entity modules so Base.metadata.create_all() registers them.
import src.entities.agent_prompt  # noqa: F401
import src.entities.program  # noqa: F401
import src.entities.scrape_job  # noqa: F401
import src.entities.scraper_settings  # noqa: F401


@pytest.fixture
def db_session():
    """In-memory SQLite for unit tests. Never hits production DB."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    TestSession = sessionmaker(bind=engine)
    session = TestSession()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db_session: Session):
    """FastAPI TestClient with DB dependency overridden to use in-memory SQLite."""
    from fastapi.testclient import TestClient
    from src.core.database import get_db
    from src.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()


@pytest.fixture
def program_data():
    """A complete program as the extraction service would return it."""
    return {
        "name": "Christ Business Roundtable",
        "description": "Monthly peer group for Christian business owners.",
        "religiousAffiliation": "protestant",
        "address": "100 Main St",
        "city": "Dallas",
        "state": "TX",
        "zipCode": "75201",
        "meetingFormat": "in-person",
        "meetingFrequency": "monthly",
        "meetingType": "peer-group",
        "meetingLength": 3,
        "averageAttendance": 12,
        "annualPrice": 300,
    }


@pytest.fixture
def extraction_client():
    """Mock ExtractionClient; tests set return values / side effects."""
    client = Mock()
    client.extract_one = AsyncMock()
    client.extract_from_prompt = AsyncMock(return_value=[])
    client.discover_urls = AsyncMock(return_value=[])
    return client

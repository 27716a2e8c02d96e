"""
Shared fixtures: an in-memory SQLite database and a TestClient bound to it.
"""

import os

# Must be set before tradebook.database is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("INITIAL_CAPITAL", None)

import pytest
from fastapi.testclient import TestClient

from tradebook.database import Base, engine, SessionLocal
from tradebook import models  # noqa: F401
from tradebook.main import app


@pytest.fixture(autouse=True)
def reset_schema():
    """Give every test empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client

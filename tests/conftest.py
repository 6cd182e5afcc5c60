import os

# settings are read at import time; give the test run its own SQLite database
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_caretoshare.db")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test_caretoshare.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from caretoshare.main import app as fastapi_app
from caretoshare.core.config import settings
from caretoshare.core.deps import get_db, get_identity_client, get_storage, get_photos
from caretoshare.db.base import Base
from caretoshare.db.session import make_engine

# registers every table on Base.metadata
import caretoshare.models  # noqa: F401

from tests.helpers import FakePhotos, FakeStorage, identities


TEST_DB_URL = settings.TEST_DATABASE_URL or os.getenv("TEST_DATABASE_URL")
if not TEST_DB_URL:
    raise RuntimeError("TEST_DATABASE_URL is not set. Add it to .env or env var for tests.")

engine = make_engine(TEST_DB_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create the schema once for the whole run, drop it at the end."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_tables():
    """Empty every table before each test (children first)."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    identities.clear()


@pytest.fixture()
def db():
    """Session for tests that read or seed the database directly."""
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def photos():
    return FakePhotos()


@pytest.fixture()
def client(storage, photos):
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_identity_client] = lambda: identities
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    fastapi_app.dependency_overrides[get_photos] = lambda: photos
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()

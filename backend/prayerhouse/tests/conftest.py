"""
Shared fixtures: in-memory database, temporary bucket and token helpers.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from prayerhouse.main import app
from prayerhouse.core.security import create_access_token
from prayerhouse.db.session import get_db, init_db
from prayerhouse.services.storage_service import StorageBucket, get_storage


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return StorageBucket(name="mission-images", root=str(tmp_path), public_url="/static")


@pytest.fixture
def client(db, storage):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user id, as the auth provider would issue them."""
    def _headers(user_id: str, name: str = "김성도"):
        token = create_access_token({"sub": user_id, "user_metadata": {"name": name}})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def stored_files(storage):
    """Relative paths of every object currently in the bucket."""
    def _list():
        if not storage.root.exists():
            return []
        return sorted(
            str(p.relative_to(storage.root)) for p in storage.root.rglob("*") if p.is_file()
        )
    return _list

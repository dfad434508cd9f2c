import json
import os

# In-memory database for the app-level engine; every test gets its own below
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cleancheck.infrastructure.database import Base, get_db, enable_sqlite_foreign_keys
from cleancheck.infrastructure import models
from cleancheck.infrastructure.storage import StorageService
from cleancheck.api import deps
from cleancheck.main import app


class FakeStorage(StorageService):
    """Records calls instead of talking to MinIO/R2."""

    def __init__(self):
        super().__init__("test-bucket")
        self.removed = []

    def presigned_put_url(self, key, expiry_seconds):
        return f"https://storage.test/{self.bucket}/{key}?method=PUT&expires={expiry_seconds}"

    def presigned_get_url(self, key, expiry_seconds):
        return f"https://storage.test/{self.bucket}/{key}?method=GET&expires={expiry_seconds}"

    def remove_objects(self, keys):
        self.removed.extend(keys)

    def ensure_bucket(self):
        return False


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory SQLite database per test, foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def fake_storage():
    return FakeStorage()


@pytest.fixture(scope="function")
def admin_user(test_db):
    user = models.User(email="admin@school.test", name="Admin")
    test_db.add(user)
    test_db.commit()
    test_db.refresh(user)
    return user


def _override_db(test_db):
    def override_get_db():
        try:
            yield test_db
        finally:
            pass
    return override_get_db


@pytest.fixture(scope="function")
def client(test_db, fake_storage, admin_user):
    """Create a test client signed in as an administrator, with database and storage overrides."""
    app.dependency_overrides[get_db] = _override_db(test_db)
    app.dependency_overrides[deps.get_current_admin] = lambda: admin_user
    app.dependency_overrides[deps.get_storage] = lambda: fake_storage
    app.dependency_overrides[deps.get_optional_storage] = lambda: fake_storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def anon_client(test_db, fake_storage):
    """Create a test client with real authentication (no signed-in administrator)."""
    deps._rate_limit_store.clear()
    app.dependency_overrides[get_db] = _override_db(test_db)
    app.dependency_overrides[deps.get_storage] = lambda: fake_storage
    app.dependency_overrides[deps.get_optional_storage] = lambda: fake_storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_no_db():
    """Create a test client without database dependency for basic endpoint tests."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


# =============================================================================
# Record factories
# =============================================================================

@pytest.fixture(scope="function")
def make_class(test_db):
    def _make(name):
        school_class = models.SchoolClass(name=name)
        test_db.add(school_class)
        test_db.commit()
        test_db.refresh(school_class)
        return school_class
    return _make


@pytest.fixture(scope="function")
def make_area(test_db):
    def _make(name, school_class, rank=None):
        if rank is None:
            rank = test_db.query(models.Area).count() + 1
        area = models.Area(name=name, class_id=school_class.id, rank=rank)
        test_db.add(area)
        test_db.commit()
        test_db.refresh(area)
        return area
    return _make


@pytest.fixture(scope="function")
def make_default(test_db):
    def _make(text, shorthand=None, rank=None):
        if rank is None:
            rank = test_db.query(models.Default).count() + 1
        default = models.Default(text=text, shorthand=shorthand or text[:2], rank=rank)
        test_db.add(default)
        test_db.commit()
        test_db.refresh(default)
        return default
    return _make


@pytest.fixture(scope="function")
def make_report(test_db):
    def _make(area, date, text, repeated=1, evidence=None, comment=None):
        report = models.Report(
            area_id=area.id,
            date=date,
            text=text,
            repeated=repeated,
            evidence=json.dumps(evidence) if evidence is not None else None,
            comment=comment,
        )
        test_db.add(report)
        test_db.commit()
        test_db.refresh(report)
        return report
    return _make

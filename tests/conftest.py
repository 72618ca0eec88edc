import os
import tempfile
from datetime import date

os.environ["DB_URL"] = f"sqlite:///{tempfile.mkdtemp()}/paper-tracker-test.db"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["AUTH_PASSWORD"] = "hunter2"
os.environ["AUTH_ENABLED"] = "true"

import pytest
from fastapi.testclient import TestClient

from paper_tracker.auth import issue_token
from paper_tracker.config import get_settings
from paper_tracker.database import Base, SessionLocal, engine
from paper_tracker.errors import BlobError
from paper_tracker.main import app, get_today
from paper_tracker.storage import get_blob_store


class FakeBlobStore:
    def __init__(self):
        self.objects = {}
        self.puts = []
        self.deleted = []
        self.fail_put = False
        self.fail_delete = False

    def url_for(self, key):
        return f"https://blobs.test/paper-reviews/{key}"

    def put(self, key, data, content_type):
        if self.fail_put:
            raise BlobError(f"Failed to upload {key}")
        self.puts.append(key)
        self.objects[key] = (data, content_type)
        return self.url_for(key)

    def delete(self, key):
        if self.fail_delete:
            raise BlobError(f"Failed to delete {key}")
        self.deleted.append(key)
        self.objects.pop(key, None)


class Clock:
    def __init__(self, today):
        self.today = today

    def __call__(self):
        return self.today


@pytest.fixture(autouse=True)
def reset_db():
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
def blobs():
    return FakeBlobStore()


@pytest.fixture
def clock():
    return Clock(date(2024, 1, 1))


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {issue_token(get_settings())}"}


@pytest.fixture
def overrides(blobs, clock):
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_today] = clock
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides, auth_headers):
    return TestClient(app, headers=auth_headers)


@pytest.fixture
def anyio_backend():
    return "asyncio"

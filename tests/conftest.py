import pytest
from sqlmodel import Session

from app.core.errors import StorageError
from app.db.seed import seed_demo_data, seed_users
from app.db.session import build_engine, init_db
from app.schemas.storage import BackendStatus
from app.services.storage.storage_service import StorageService


class FakeBackend:
    """In-memory storage backend that records every call"""

    def __init__(self, name: str, fail_store: bool = False, fail_release: bool = False):
        self.name = name
        self.fail_store = fail_store
        self.fail_release = fail_release
        self.objects = {}
        self.stored = []
        self.released = []

    def store(self, data: bytes, filename: str, version: str):
        if self.fail_store:
            raise StorageError(f"{self.name} unavailable")
        key = f"{version}/{filename}"
        self.objects[key] = data
        self.stored.append(key)
        return {"key": key}

    def release(self, reference):
        if self.fail_release:
            raise StorageError(f"{self.name} delete failed")
        self.objects.pop(reference["key"], None)
        self.released.append(reference["key"])

    def check(self):
        return BackendStatus(connected=True, detail=self.name)


@pytest.fixture
def engine():
    db_engine = build_engine("sqlite://")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def seeded(session):
    """Demo fleet (printers 1-4), catalog and history plus both accounts"""
    seed_users(session)
    seed_demo_data(session)
    return session


@pytest.fixture
def local_backend():
    return FakeBackend("local")


@pytest.fixture
def gcs_backend():
    return FakeBackend("gcs")


@pytest.fixture
def storage(local_backend, gcs_backend):
    return StorageService({"local": local_backend, "gcs": gcs_backend}, default_provider="local")

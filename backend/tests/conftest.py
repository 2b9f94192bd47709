# backend/tests/conftest.py
from __future__ import annotations

import itertools
import os
import tempfile
from typing import Callable, Optional

import pytest

# must be in place before homeskillet.config builds its Settings
_DB_DIR = tempfile.mkdtemp(prefix="homeskillet-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["APP_ENV"] = "test"
os.environ.setdefault("AUTH_PBKDF2_ITERS", "1000")

from fastapi.testclient import TestClient  # noqa: E402

from homeskillet.db import Base, engine  # noqa: E402
from homeskillet.main import app  # noqa: E402
from homeskillet.services.storage import StoredObject, get_storage  # noqa: E402

API = "/api/v1"
PASSWORD = "Passw0rd!"


class MemoryStorage:
    """In-memory stand-in for the S3 storage: same calls, bytes kept in a dict."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.deleted: list[tuple[str, str]] = []

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: Optional[str] = None) -> StoredObject:
        self.objects[(bucket, path)] = data
        return StoredObject(bucket=bucket, path=path, url=self.public_url(bucket, path), size=len(data), content_type=content_type)

    def public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.test/{bucket}/{path}"

    def signed_url(self, bucket: str, path: str, *, expires_in: Optional[int] = None) -> str:
        return f"https://storage.test/{bucket}/{path}?signed=1&expires={expires_in or 3600}"

    def delete(self, bucket: str, path: str) -> None:
        self.objects.pop((bucket, path), None)
        self.deleted.append((bucket, path))


Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def client(storage: MemoryStorage):
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def make_user(client: TestClient) -> Callable[..., tuple[str, dict[str, str]]]:
    """Registers a fresh user and returns (user_id, auth headers)."""
    counter = itertools.count(1)

    def _make(name: str = "user", user_type: str = "property_owner") -> tuple[str, dict[str, str]]:
        n = next(counter)
        r = client.post(
            f"{API}/auth/register",
            json={
                "email": f"{name}{n}@example.com",
                "password": PASSWORD,
                "firstName": name.title(),
                "lastName": f"Tester{n}",
                "userType": user_type,
            },
        )
        assert r.status_code == 201, r.text
        data = r.json()["data"]
        return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}

    return _make

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient

from yja_posts.database import StorageError
from yja_posts.main import app

NOW_MS = 1_700_000_000_000


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.writes += 1
        self.data[key] = value


class BrokenKeyValueStore(MemoryKeyValueStore):
    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageError("disk unavailable")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError("disk full")
        super().set(key, value)


class SequentialIds:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"p_test{self.count}"


@pytest.fixture
def memory_provider() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def clock():
    return lambda: NOW_MS


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("POSTS_DB_PATH", str(tmp_path / "posts.db"))
    with TestClient(app) as test_client:
        yield test_client

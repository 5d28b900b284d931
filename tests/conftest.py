from pathlib import Path
from typing import List

import pytest
from fastapi.testclient import TestClient

from errors import StorageError
from main import create_app
from storage.base import StorageBackend
from storage.file_store import FileWaitlistStorage
from storage.memory import MemoryWaitlistStorage
from waitlist import WaitlistService

ADMIN_KEY = "test-admin-key"


class BrokenStorage(StorageBackend):
    """Backend whose writes always fail, like a read-only filesystem."""

    def __init__(self, name: str = "broken", emails: List[str] = None):
        self.name = name
        self.emails = list(emails or [])
        self.calls = 0

    def add_email(self, email, source="waitlist", metadata=None):
        self.calls += 1
        raise StorageError(self.name, "read-only filesystem")

    def get_emails(self):
        return list(self.emails)


def blocked_dir(tmp_path: Path) -> Path:
    """A directory path that can never be created because its parent is a file."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    return blocker / "data"


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def file_store(data_dir):
    return FileWaitlistStorage(data_dir, write_retry_delay=0)


@pytest.fixture
def memory_store():
    return MemoryWaitlistStorage()


@pytest.fixture
def service(file_store, memory_store):
    return WaitlistService([file_store, memory_store])


@pytest.fixture
def client(service):
    app = create_app(service=service, admin_api_key=ADMIN_KEY)
    with TestClient(app) as test_client:
        yield test_client

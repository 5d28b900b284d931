import httpx
import pytest

from conftest import blocked_dir
from errors import StorageError
from storage.backup_api import BackupApiWaitlistStorage
from storage.database import DatabaseWaitlistStorage
from storage.memory import MEMORY_ADDED_MESSAGE, MemoryWaitlistStorage


@pytest.fixture
def database_store(tmp_path):
    store = DatabaseWaitlistStorage(f"sqlite:///{tmp_path / 'waitlist.db'}", base_delay=0)
    yield store
    store.close()


def test_database_insert_and_duplicate(database_store):
    assert database_store.add_email("a@b.com", source="landing", metadata={"ref": "x"}).success
    result = database_store.add_email("a@b.com")

    assert result.duplicate
    assert result.backend == "database"
    assert database_store.get_emails() == ["a@b.com"]
    assert database_store.last_updated() is not None


def test_database_keeps_insertion_order(database_store):
    for email in ["c@d.com", "a@b.com"]:
        database_store.add_email(email)
    assert database_store.get_emails() == ["c@d.com", "a@b.com"]
    assert database_store.get_total_count() == 2


def test_database_retries_then_gives_up(tmp_path):
    store = DatabaseWaitlistStorage(f"sqlite:///{blocked_dir(tmp_path) / 'waitlist.db'}", base_delay=0)

    with pytest.raises(StorageError):
        store.add_email("a@b.com")
    assert store.get_emails() == []
    store.close()


def test_memory_store_duplicates():
    store = MemoryWaitlistStorage()
    result = store.add_email("a@b.com")

    assert result.success
    assert result.message == MEMORY_ADDED_MESSAGE
    assert store.add_email("a@b.com").duplicate
    assert store.get_emails() == ["a@b.com"]
    assert store.last_updated() is not None


def _backup_store(handler, calls):
    def recording(request):
        calls.append(request)
        return handler(request)

    return BackupApiWaitlistStorage(
        "https://backup.example.com/waitlist",
        "backup-key",
        base_delay=0,
        transport=httpx.MockTransport(recording),
    )


def test_backup_api_posts_entry():
    calls = []
    store = _backup_store(lambda request: httpx.Response(201, json={"ok": True}), calls)

    result = store.add_email("a@b.com", source="landing")

    assert result.success
    assert len(calls) == 1
    assert calls[0].headers["Authorization"] == "Bearer backup-key"
    assert b'"email":"a@b.com"' in calls[0].content.replace(b" ", b"")
    assert store.get_emails() == []


def test_backup_api_conflict_is_duplicate():
    calls = []
    store = _backup_store(lambda request: httpx.Response(409), calls)
    assert store.add_email("a@b.com").duplicate


def test_backup_api_retries_server_errors():
    calls = []
    store = _backup_store(lambda request: httpx.Response(503), calls)

    with pytest.raises(StorageError):
        store.add_email("a@b.com")
    assert len(calls) == 3


def test_backup_api_does_not_retry_client_errors():
    calls = []
    store = _backup_store(lambda request: httpx.Response(400), calls)

    with pytest.raises(StorageError):
        store.add_email("a@b.com")
    assert len(calls) == 1


def test_backup_api_requires_configuration():
    with pytest.raises(ValueError):
        BackupApiWaitlistStorage("", "")

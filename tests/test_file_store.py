import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import blocked_dir
from errors import StorageError
from storage.file_store import LOG_HEADER, FileWaitlistStorage, parse_document


def test_add_email_writes_document_and_log(file_store):
    result = file_store.add_email("a@b.com")

    assert result.success
    assert result.backend == "file"
    data = json.loads(file_store.waitlist_path.read_text(encoding="utf-8"))
    assert data["emails"] == ["a@b.com"]
    assert isinstance(data["lastUpdated"], str)

    log = file_store.log_path.read_text(encoding="utf-8")
    assert log.startswith(LOG_HEADER)
    assert "a@b.com (added: " in log


def test_duplicate_is_reported_not_stored(file_store):
    file_store.add_email("a@b.com")
    result = file_store.add_email("a@b.com")

    assert not result.success
    assert result.duplicate
    assert result.message == "Email already registered"
    assert file_store.get_emails() == ["a@b.com"]
    assert file_store.get_total_count() == 1


def test_preserves_insertion_order(file_store):
    for email in ["c@d.com", "a@b.com", "e@f.com"]:
        file_store.add_email(email)
    assert file_store.get_emails() == ["c@d.com", "a@b.com", "e@f.com"]


def test_reads_see_external_changes(file_store):
    file_store.add_email("a@b.com")
    file_store.waitlist_path.write_text(
        json.dumps({"emails": ["other@b.com"], "lastUpdated": "2024-01-01T00:00:00+00:00"}),
        encoding="utf-8",
    )
    assert file_store.get_emails() == ["other@b.com"]
    assert file_store.last_updated() == "2024-01-01T00:00:00+00:00"


def test_missing_file_reads_empty(file_store):
    assert file_store.get_emails() == []
    assert file_store.get_total_count() == 0
    assert file_store.last_updated() is None


def test_unwritable_directory_raises_storage_error(tmp_path):
    store = FileWaitlistStorage(blocked_dir(tmp_path), write_retry_delay=0)
    with pytest.raises(StorageError):
        store.add_email("a@b.com")
    assert store.get_emails() == []


def test_corrupt_document_is_reset(file_store):
    file_store.data_dir.mkdir(parents=True)
    file_store.waitlist_path.write_text("{not json", encoding="utf-8")

    assert file_store.get_emails() == []
    assert file_store.add_email("a@b.com").success
    assert file_store.get_emails() == ["a@b.com"]


def test_undecodable_bytes_do_not_break_reads_or_writes(file_store):
    file_store.data_dir.mkdir(parents=True)
    file_store.waitlist_path.write_bytes(b'{"emails": ["\xff\xfe"]}')

    assert file_store.get_emails() == ["\ufffd\ufffd"]
    assert file_store.last_updated() is None
    assert file_store.add_email("a@b.com").success
    assert file_store.get_emails()[-1] == "a@b.com"


def test_concurrent_duplicate_submissions_store_one_entry(file_store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: file_store.add_email("a@b.com"), range(16)))

    assert sum(result.success for result in results) == 1
    assert sum(result.duplicate for result in results) == 15
    assert file_store.get_emails() == ["a@b.com"]


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "[]",
        json.dumps({"emails": "a@b.com"}),
        json.dumps({"emails": ["a@b.com", 3]}),
        "[" * 100000 + "]" * 100000,
    ],
)
def test_parse_document_tolerates_bad_shapes(raw):
    assert parse_document(raw).emails == []


def test_parse_document_replaces_bad_timestamp():
    document = parse_document(json.dumps({"emails": ["a@b.com"], "lastUpdated": 12}))
    assert document.emails == ["a@b.com"]
    assert isinstance(document.lastUpdated, str)


def test_log_can_be_disabled(data_dir):
    store = FileWaitlistStorage(data_dir, write_log=False)
    store.add_email("a@b.com")
    assert not store.log_path.exists()

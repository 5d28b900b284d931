"""
JSON file storage for the waitlist.

Layout of waitlist.json:
    {"emails": ["a@b.com", ...], "lastUpdated": "2024-01-01T00:00:00+00:00"}

Every addition is also appended to waitlist_emails.txt so the list can be
read without tooling.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import StorageError
from models import AddResult, WaitlistDocument, utc_now_iso
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

WAITLIST_FILENAME = "waitlist.json"
LOG_FILENAME = "waitlist_emails.txt"
LOG_HEADER = "SNIPIT WAITLIST EMAILS\n======================\n\n"
WRITE_ATTEMPTS = 3


def parse_document(raw: str) -> WaitlistDocument:
    """Parse waitlist.json contents, resetting whatever is malformed."""
    document = WaitlistDocument()
    if not raw or not raw.strip():
        return document
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Waitlist file is not valid JSON, starting from an empty list")
        return document
    if not isinstance(data, dict):
        logger.warning("Waitlist file is not a JSON object, starting from an empty list")
        return document

    emails = data.get("emails")
    if isinstance(emails, list) and all(isinstance(item, str) for item in emails):
        document.emails = emails
    else:
        logger.warning("Waitlist file has a malformed 'emails' field, resetting it")

    if isinstance(data.get("lastUpdated"), str):
        document.lastUpdated = data["lastUpdated"]
    return document


class FileWaitlistStorage(StorageBackend):
    """Keeps the waitlist in a single JSON document under data_dir."""

    def __init__(
        self,
        data_dir: Path | str,
        name: str = "file",
        write_retry_delay: float = 0.1,
        write_log: bool = True,
    ):
        self.data_dir = Path(data_dir)
        self.name = name
        self.write_retry_delay = write_retry_delay
        self.write_log = write_log
        self._lock = threading.Lock()

    @property
    def waitlist_path(self) -> Path:
        return self.data_dir / WAITLIST_FILENAME

    @property
    def log_path(self) -> Path:
        return self.data_dir / LOG_FILENAME

    def ensure_storage(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            if not self.waitlist_path.exists():
                self._write_document(WaitlistDocument())
        except OSError as exc:
            raise StorageError(self.name, f"cannot initialize {self.data_dir}: {exc}") from exc

        if self.write_log and not self.log_path.exists():
            try:
                self.log_path.write_text(LOG_HEADER, encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not create waitlist log %s: %s", self.log_path, exc)

    def load(self) -> WaitlistDocument:
        try:
            # Undecodable bytes become U+FFFD instead of failing the read
            raw = self.waitlist_path.read_bytes().decode("utf-8", errors="replace")
        except FileNotFoundError:
            return WaitlistDocument()
        except OSError as exc:
            raise StorageError(self.name, f"cannot read {self.waitlist_path}: {exc}") from exc
        return parse_document(raw)

    def _write_document(self, document: WaitlistDocument) -> None:
        payload = json.dumps(document.model_dump(), indent=2)
        last_error: Optional[OSError] = None
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                self.waitlist_path.write_text(payload, encoding="utf-8")
                return
            except OSError as exc:
                last_error = exc
                logger.warning(
                    "Write to %s failed (attempt %d/%d): %s",
                    self.waitlist_path, attempt, WRITE_ATTEMPTS, exc,
                )
                if attempt < WRITE_ATTEMPTS:
                    time.sleep(self.write_retry_delay)
        raise StorageError(
            self.name,
            f"failed to write {self.waitlist_path} after {WRITE_ATTEMPTS} attempts: {last_error}",
        )

    def _append_log(self, email: str, added_at: str) -> None:
        try:
            if not self.log_path.exists():
                self.log_path.write_text(LOG_HEADER, encoding="utf-8")
            with open(self.log_path, "a", encoding="utf-8") as file:
                file.write(f"{email} (added: {added_at})\n")
        except OSError as exc:
            logger.warning("Could not append to waitlist log %s: %s", self.log_path, exc)

    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        with self._lock:
            self.ensure_storage()
            document = self.load()
            if email in document.emails:
                logger.debug("%s already in %s", email, self.waitlist_path)
                return self.duplicate()

            document.emails.append(email)
            document.lastUpdated = utc_now_iso()
            self._write_document(document)

        if self.write_log:
            self._append_log(email, document.lastUpdated)
        logger.info("Saved waitlist entry to %s (%d total)", self.waitlist_path, len(document.emails))
        return self.added()

    def get_emails(self) -> List[str]:
        try:
            return self.load().emails
        except StorageError as exc:
            logger.error("Could not read waitlist emails: %s", exc)
            return []

    def last_updated(self) -> Optional[str]:
        if not self.waitlist_path.exists():
            return None
        try:
            return self.load().lastUpdated
        except StorageError:
            return None

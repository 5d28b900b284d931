"""
Last-resort in-process waitlist storage. Contents are lost on restart.
"""
import logging
from typing import Any, Dict, List, Optional

from models import AddResult, utc_now_iso
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

MEMORY_ADDED_MESSAGE = "Email added to waitlist (memory storage)"


class MemoryWaitlistStorage(StorageBackend):

    def __init__(self, name: str = "memory"):
        self.name = name
        self.emails: List[str] = []
        self._last_updated: Optional[str] = None

    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        if email in self.emails:
            return self.duplicate()
        self.emails.append(email)
        self._last_updated = utc_now_iso()
        logger.warning("Waitlist entry held in memory only (%d in memory)", len(self.emails))
        return self.added(MEMORY_ADDED_MESSAGE)

    def get_emails(self) -> List[str]:
        return list(self.emails)

    def last_updated(self) -> Optional[str]:
        return self._last_updated

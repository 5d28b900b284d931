"""
Common surface shared by every waitlist storage backend.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from models import AddResult

DUPLICATE_MESSAGE = "Email already registered"
ADDED_MESSAGE = "Email added to waitlist"


class StorageBackend(ABC):
    """A place the waitlist can be persisted to.

    add_email raises errors.StorageError when the backend itself is broken;
    a duplicate is a normal result, not an error.
    """

    name: str = "backend"

    @abstractmethod
    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        ...

    @abstractmethod
    def get_emails(self) -> List[str]:
        ...

    def get_total_count(self) -> int:
        return len(self.get_emails())

    def last_updated(self) -> Optional[str]:
        return None

    def close(self) -> None:
        pass

    def added(self, message: str = ADDED_MESSAGE) -> AddResult:
        return AddResult(success=True, message=message, backend=self.name)

    def duplicate(self) -> AddResult:
        return AddResult(success=False, message=DUPLICATE_MESSAGE, backend=self.name, duplicate=True)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"

"""
Write-only backend that forwards sign-ups to a remote backup endpoint.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from errors import StorageError
from models import AddResult, utc_now_iso
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


class BackupApiWaitlistStorage(StorageBackend):

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        name: str = "backup_api",
        max_retries: int = 3,
        base_delay: float = 0.5,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not endpoint or not api_key:
            raise ValueError("WAITLIST_BACKUP_API and WAITLIST_BACKUP_KEY are required for the backup API")
        self.endpoint = endpoint
        self.name = name
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        payload = {"email": email, "timestamp": utc_now_iso(), "source": source}
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.client.post(self.endpoint, json=payload)
                if response.status_code == 409:
                    return self.duplicate()
                response.raise_for_status()
                logger.info("Backed up waitlist entry to %s", self.endpoint)
                return self.added()
            except httpx.HTTPStatusError as exc:
                last_error = exc
                # Client errors will not improve on retry
                if exc.response.status_code < 500:
                    break
            except httpx.HTTPError as exc:
                last_error = exc
            logger.warning("Backup API attempt %d/%d failed: %s", attempt, self.max_retries, last_error)
            if attempt < self.max_retries:
                time.sleep(self.base_delay * 2 ** attempt)
        raise StorageError(self.name, f"backup API rejected entry: {last_error}")

    def get_emails(self) -> List[str]:
        return []

    def close(self) -> None:
        self.client.close()

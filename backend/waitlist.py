"""
Waitlist service for Snipit.

Writes walk an ordered chain of storage backends and stop at the first one
that accepts the email. The first backend is canonical: it is the one the
admin read path reports on and the one consulted when a fallback backend
claims the email is a duplicate under the "reconciled" policy.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from config import waitlist_config
from errors import DuplicateEmailError, InvalidEmailError, StorageError, StorageUnavailableError
from models import AddResult, WaitlistEntry, WaitlistStats
from replication import DEAD_LETTER_FILENAME, BackgroundReplicator
from storage.base import ADDED_MESSAGE, DUPLICATE_MESSAGE, StorageBackend
from storage.registry import build_backends
from validation import is_valid_email, normalize_email

logger = logging.getLogger(__name__)

STRICT = "strict"
RECONCILED = "reconciled"


class WaitlistService:

    def __init__(
        self,
        backends: Sequence[StorageBackend],
        replicator: Optional[BackgroundReplicator] = None,
        duplicate_policy: str = STRICT,
    ):
        if not backends:
            raise ValueError("At least one waitlist backend is required")
        if duplicate_policy not in (STRICT, RECONCILED):
            raise ValueError(f"Unknown duplicate policy: {duplicate_policy}")
        self.backends: List[StorageBackend] = list(backends)
        self.replicator = replicator
        self.duplicate_policy = duplicate_policy

    @property
    def canonical(self) -> StorageBackend:
        return self.backends[0]

    def add_email(
        self,
        email: Any,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        """Add email to the waitlist.

        Raises InvalidEmailError before touching storage, DuplicateEmailError
        when the email is already registered, and StorageUnavailableError when
        every backend failed.
        """
        if not email:
            raise InvalidEmailError("Email is required")
        if not isinstance(email, str):
            raise InvalidEmailError("Invalid email format")
        normalized = normalize_email(email)
        if not normalized:
            raise InvalidEmailError("Email is required")
        if not is_valid_email(normalized):
            raise InvalidEmailError("Invalid email format")

        entry = WaitlistEntry(email=normalized, source=source or "waitlist", metadata=metadata or {})
        failures = []

        for backend in self.backends:
            try:
                result = backend.add_email(entry.email, source=entry.source, metadata=entry.metadata)
            except StorageError as exc:
                logger.warning("Waitlist backend %s failed, trying next: %s", backend.name, exc)
                failures.append(backend.name)
                continue

            if result.duplicate:
                result = self._resolve_duplicate(backend, entry)

            if result.success:
                logger.info("Waitlist entry accepted by %s", result.backend)
                self._replicate(entry, result.backend)
            return result

        logger.error("All waitlist backends failed: %s", ", ".join(failures))
        raise StorageUnavailableError(
            "Failed to save email. Please try again later.",
            details=", ".join(failures),
        )

    def _resolve_duplicate(self, backend: StorageBackend, entry: WaitlistEntry) -> AddResult:
        if backend is self.canonical or self.duplicate_policy == STRICT:
            raise DuplicateEmailError(DUPLICATE_MESSAGE)

        # Reconciled: only the canonical backend's copy counts as a duplicate
        if entry.email in self.canonical.get_emails():
            raise DuplicateEmailError(DUPLICATE_MESSAGE)
        logger.info(
            "%s already holds the entry but %s does not, accepting",
            backend.name, self.canonical.name,
        )
        return AddResult(success=True, message=ADDED_MESSAGE, backend=backend.name)

    def _replicate(self, entry: WaitlistEntry, accepted_by: Optional[str]) -> None:
        if self.replicator is None:
            return
        self.replicator.submit(entry, skip=accepted_by)

    def get_stats(self) -> WaitlistStats:
        """Full list and count from the canonical backend."""
        emails = self.canonical.get_emails()
        return WaitlistStats(
            count=len(emails),
            lastUpdated=self.canonical.last_updated(),
            emails=emails,
        )

    def close(self) -> None:
        if self.replicator is not None:
            self.replicator.shutdown()
        for backend in self.backends:
            backend.close()


def create_waitlist_service(config: Optional[dict] = None) -> WaitlistService:
    """Build the service from environment configuration.

    Called once per process by the application factory.
    """
    config = config or waitlist_config()
    backends = build_backends(config["backends"], config)

    replicator = None
    targets = build_backends(config["replicate_to"], config)
    if targets:
        replicator = BackgroundReplicator(
            targets,
            dead_letter_path=Path(config["data_dir"]) / DEAD_LETTER_FILENAME,
            max_workers=config.get("replication_workers", 2),
        )

    logger.info(
        "Waitlist chain: %s; replicating to: %s; duplicate policy: %s",
        " -> ".join(b.name for b in backends),
        ", ".join(t.name for t in targets) or "nothing",
        config["duplicate_policy"],
    )
    return WaitlistService(backends, replicator=replicator, duplicate_policy=config["duplicate_policy"])

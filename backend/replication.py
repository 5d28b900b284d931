"""
Best-effort background replication of accepted sign-ups.

Jobs run on a small thread pool so the request that accepted the email
never waits on a remote store. Failed jobs go to a dead-letter channel: an
in-process list plus a JSON-lines file when a path is configured.
"""
from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from models import WaitlistEntry, utc_now_iso
from storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEAD_LETTER_FILENAME = "replication_dead_letter.jsonl"


class BackgroundReplicator:

    def __init__(
        self,
        targets: Iterable[StorageBackend],
        dead_letter_path: Optional[Path | str] = None,
        max_workers: int = 2,
    ):
        self.targets = list(targets)
        self.dead_letter_path = Path(dead_letter_path) if dead_letter_path else None
        self.dead_letters: List[Dict] = []
        self.executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="waitlist-replication",
        )
        self._jobs: Set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, entry: WaitlistEntry, skip: Optional[str] = None) -> List[Future]:
        """Queue entry for every target except the backend named by skip."""
        futures = []
        for target in self.targets:
            if target.name == skip:
                continue
            try:
                future = self.executor.submit(self._replicate, target, entry)
            except RuntimeError as exc:
                # Executor already shut down
                self._dead_letter(target, entry, exc)
                continue
            with self._lock:
                self._jobs.add(future)
            future.add_done_callback(self._forget)
            futures.append(future)
        return futures

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._jobs.discard(future)

    def _replicate(self, target: StorageBackend, entry: WaitlistEntry) -> None:
        try:
            result = target.add_email(entry.email, source=entry.source, metadata=entry.metadata)
        except Exception as exc:  # noqa: BLE001 - any failure belongs in the dead-letter log
            self._dead_letter(target, entry, exc)
            return
        if result.duplicate:
            logger.debug("Replica %s already has %s", target.name, entry.email)
        else:
            logger.info("Replicated waitlist entry to %s", target.name)

    def _dead_letter(self, target: StorageBackend, entry: WaitlistEntry, error: Exception) -> None:
        record = {
            "ts": utc_now_iso(),
            "target": target.name,
            "email": entry.email,
            "source": entry.source,
            "error": str(error),
        }
        logger.error("Replication to %s failed: %s", target.name, error)
        with self._lock:
            self.dead_letters.append(record)
            if self.dead_letter_path is None:
                return
            try:
                self.dead_letter_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.dead_letter_path, "a", encoding="utf-8") as file:
                    file.write(json.dumps(record, ensure_ascii=False) + "\n")
            except OSError as exc:
                logger.error("Could not write dead-letter record to %s: %s", self.dead_letter_path, exc)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until queued jobs finish. Used at shutdown and in tests."""
        with self._lock:
            pending = set(self._jobs)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait_for_jobs: bool = True) -> None:
        self.executor.shutdown(wait=wait_for_jobs)
        for target in self.targets:
            target.close()

"""
Fallback filesystem storage that probes several directories.

Hosting containers are often read-only apart from a temp or home directory,
so each write walks the candidates in order and commits to the first one
that works.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from errors import StorageError
from models import AddResult
from storage.base import StorageBackend
from storage.file_store import FileWaitlistStorage

logger = logging.getLogger(__name__)

SUBDIR = "snipit-waitlist"


def candidate_directories(cwd: Optional[Path] = None) -> List[Path]:
    """Default probe order: ./data, platform temp, $TMPDIR, $TEMP, $HOME, cwd."""
    cwd = Path(cwd) if cwd else Path.cwd()
    candidates = [cwd / "data", Path(tempfile.gettempdir()) / SUBDIR]
    for var in ("TMPDIR", "TEMP", "HOME"):
        value = os.environ.get(var)
        if value:
            candidates.append(Path(value) / SUBDIR)
    candidates.append(cwd)
    return dedupe_paths(candidates)


def dedupe_paths(paths: Iterable[Path]) -> List[Path]:
    seen = set()
    unique = []
    for path in paths:
        key = str(path)
        if key in seen:
            continue
        seen.add(key)
        unique.append(path)
    return unique


class MultiPathWaitlistStorage(StorageBackend):
    """Writes to the first candidate directory that accepts the write.

    Candidates are not kept consistent with each other; a duplicate reported
    by the first working candidate ends the scan.
    """

    def __init__(
        self,
        directories: Optional[Iterable[Path | str]] = None,
        name: str = "paths",
        write_retry_delay: float = 0.1,
    ):
        dirs = candidate_directories() if directories is None else [Path(d) for d in directories]
        self.name = name
        self.stores = [
            FileWaitlistStorage(d, name=f"{name}:{d}", write_retry_delay=write_retry_delay, write_log=False)
            for d in dedupe_paths(dirs)
        ]

    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        failures = []
        for store in self.stores:
            try:
                result = store.add_email(email, source=source, metadata=metadata)
            except StorageError as exc:
                logger.warning("Waitlist path %s unavailable: %s", store.data_dir, exc)
                failures.append(str(store.data_dir))
                continue
            result.backend = self.name
            if result.success:
                logger.info("Saved waitlist entry under fallback path %s", store.data_dir)
            return result

        raise StorageError(self.name, f"no writable directory among {', '.join(failures)}")

    def get_emails(self) -> List[str]:
        for store in self.stores:
            if not store.waitlist_path.exists():
                continue
            try:
                return store.load().emails
            except StorageError as exc:
                logger.warning("Skipping unreadable waitlist path %s: %s", store.data_dir, exc)
        return []

    def last_updated(self) -> Optional[str]:
        for store in self.stores:
            value = store.last_updated()
            if value:
                return value
        return None

from typing import Callable, Dict, List

from storage.backup_api import BackupApiWaitlistStorage
from storage.base import StorageBackend
from storage.database import DatabaseWaitlistStorage
from storage.file_store import FileWaitlistStorage
from storage.memory import MemoryWaitlistStorage
from storage.multi_path import MultiPathWaitlistStorage


def _file(config: dict) -> StorageBackend:
    return FileWaitlistStorage(config["data_dir"])


def _paths(config: dict) -> StorageBackend:
    return MultiPathWaitlistStorage()


def _memory(config: dict) -> StorageBackend:
    return MemoryWaitlistStorage()


def _database(config: dict) -> StorageBackend:
    if not config.get("database_url"):
        raise ValueError("DATABASE_URL is missing in .env")
    return DatabaseWaitlistStorage(config["database_url"])


def _backup_api(config: dict) -> StorageBackend:
    backup = config.get("backup_api") or {}
    return BackupApiWaitlistStorage(backup.get("endpoint", ""), backup.get("api_key", ""))


BACKENDS: Dict[str, Callable[[dict], StorageBackend]] = {
    "file": _file,
    "paths": _paths,
    "memory": _memory,
    "database": _database,
    "backup_api": _backup_api,
}


def build_backend(name: str, config: dict) -> StorageBackend:
    if name not in BACKENDS:
        raise ValueError(f"Unknown waitlist backend: {name}")
    return BACKENDS[name](config)


def build_backends(names: List[str], config: dict) -> List[StorageBackend]:
    """Build each named backend once, in the given priority order."""
    built = []
    seen = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        built.append(build_backend(name, config))
    return built

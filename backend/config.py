import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()

DEFAULT_BACKENDS = "file,paths,memory"
DUPLICATE_POLICIES = ("strict", "reconciled")


def get_env(key: str, default: str = "") -> str:
    return os.getenv(key, default).strip()


def get_env_list(key: str, default: str = "") -> List[str]:
    raw = get_env(key, default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def default_data_dir() -> Path:
    configured = get_env("WAITLIST_DATA_DIR")
    if configured:
        return Path(configured)
    # Serverless hosts only allow writes under /tmp
    if get_env("VERCEL") or get_env("AWS_LAMBDA_FUNCTION_NAME"):
        return Path("/tmp")
    return Path.cwd() / "data"


def database_url() -> Optional[str]:
    url = get_env("DATABASE_URL")
    if not url:
        return None
    # Render and Heroku hand out postgres:// URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def backup_api_config() -> dict:
    return {
        "endpoint": get_env("WAITLIST_BACKUP_API"),
        "api_key": get_env("WAITLIST_BACKUP_KEY"),
    }


def admin_config() -> dict:
    return {
        "api_key": get_env("ADMIN_API_KEY", "admin-dev-key"),
    }


def waitlist_config() -> dict:
    policy = get_env("WAITLIST_DUPLICATE_POLICY", "strict").lower()
    if policy not in DUPLICATE_POLICIES:
        raise ValueError(f"Unknown duplicate policy: {policy}")

    backup = backup_api_config()
    remotes = []
    if database_url():
        remotes.append("database")
    if backup["endpoint"] and backup["api_key"]:
        remotes.append("backup_api")

    return {
        "data_dir": default_data_dir(),
        "backends": get_env_list("WAITLIST_BACKENDS", DEFAULT_BACKENDS),
        "replicate_to": get_env_list("WAITLIST_REPLICATE_TO", ",".join(remotes)),
        "duplicate_policy": policy,
        "database_url": database_url(),
        "backup_api": backup,
        "replication_workers": int(get_env("WAITLIST_REPLICATION_WORKERS", "2")),
    }


def log_level() -> str:
    return get_env("LOG_LEVEL", "INFO").upper()

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    cache_dir: Path
    logs_dir: Path


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def _default_base(app_name: str) -> Path:
    if sys.platform.startswith("win"):
        return _windows_appdata() / app_name
    if sys.platform == "darwin":
        return _mac_app_support() / app_name
    return Path.home() / f".{app_name.lower()}"


def get_app_paths(app_name: str = "TimberDesk") -> AppPaths:
    """Resolve data directories.

    TIMBERDESK_HOME moves the whole data directory; TIMBERDESK_DB_PATH points the
    relational store somewhere else (usually a shared network drive) while the
    cache and logs stay local.
    """
    home = os.environ.get("TIMBERDESK_HOME", "").strip()
    base = Path(home) if home else _default_base(app_name)

    logs = base / "logs"
    cache = base / "cache"
    db_override = os.environ.get("TIMBERDESK_DB_PATH", "").strip()
    db = Path(db_override) if db_override else base / "timber.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    cache.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, cache_dir=cache, logs_dir=logs)

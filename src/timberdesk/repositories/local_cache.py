from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Optional


class LocalCache:
    """Durable key -> JSON document store, one file per key.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write leaves the previous document in place.
    """

    PREFIX = "timberdesk_"

    def __init__(self, cache_dir: Path | str):
        self.cache_dir = Path(cache_dir)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{self.PREFIX}{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            return json.loads(path.read_text(encoding="utf-8"))

    def set(self, key: str, data: Any) -> None:
        path = self._path(key)
        with self._lock:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, path)

    def clear(self) -> None:
        with self._lock:
            if not self.cache_dir.exists():
                return
            for f in self.cache_dir.glob(f"{self.PREFIX}*.json*"):
                f.unlink(missing_ok=True)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

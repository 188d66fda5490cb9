"""
Local key-value store for optimistic status records.

Plays the role browser localStorage plays for the web UI: a record written
at click time survives a restart of the client, and is overwritten or
removed by the next authoritative refresh. It is never the source of truth.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


class LocalStatusStore:
    """JSON file backed string store"""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = Lock()

    def _load(self) -> dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Unreadable local status file {self.path}, starting empty: {e}")
            return {}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves half a file behind
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".status-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalCache:
    """Key-value store on the local filesystem, one JSON file per key.

    Reads never raise: a missing or unreadable entry yields the caller's
    default. Writes never raise either; the caller's in-memory value stays
    authoritative for the session when persisting fails (full disk, read-only
    directory).
    """

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return default
        except OSError as exc:
            logger.warning("Error reading local cache key %r: %s", key, exc)
            return default

        # UnicodeDecodeError is a ValueError too
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            logger.warning("Corrupt local cache entry %r ignored: %s", key, exc)
            return default

    def write(self, key: str, value: Any) -> bool:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            payload = json.dumps(value, ensure_ascii=False)
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error setting local cache key %r: %s", key, exc)
            return False
        return True

    def clear(self, key: str):
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Error removing local cache key %r: %s", key, exc)

"""
Amazeing - Storage

Key-value persistence for progress, daily results and the last position.
Values are JSON-serializable; a missing key returns the caller's default.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import redis

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ============================================
# BASE
# ============================================

class KeyValueStore:
    """get/set/remove over JSON values. Errors are logged, never raised."""

    def __init__(self, prefix: str = "amazeing_"):
        self.prefix = prefix

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> bool:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def clear_all(self) -> None:
        """Remove every key that carries this store's prefix."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryStore(KeyValueStore):

    def __init__(self, prefix: str = "amazeing_"):
        super().__init__(prefix)
        self._data: Dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        item = self._data.get(key)
        if item is None:
            return default
        return json.loads(item)

    def set(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning('MemoryStore.set error for key "%s": %s', key, e)
            return False
        return True

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear_all(self) -> None:
        for key in [k for k in self._data if k.startswith(self.prefix)]:
            del self._data[key]


# ============================================
# JSON FILE
# ============================================

class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk, rewritten on every change."""

    def __init__(self, path: Path, prefix: str = "amazeing_"):
        super().__init__(prefix)
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not write store %s: %s", self.path, e)
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        data = self._read()
        data[key] = value
        return self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def clear_all(self) -> None:
        data = self._read()
        kept = {k: v for k, v in data.items() if not k.startswith(self.prefix)}
        if len(kept) != len(data):
            self._write(kept)


# ============================================
# REDIS
# ============================================

class RedisStore(KeyValueStore):

    def __init__(self, url: str, prefix: str = "amazeing_", client: Optional[redis.Redis] = None):
        super().__init__(prefix)
        self.url = url
        self.client = client or redis.Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )

    def get(self, key: str, default: Any = None) -> Any:
        try:
            item = self.client.get(key)
        except redis.RedisError as e:
            logger.warning('RedisStore.get error for key "%s": %s', key, e)
            return default
        if item is None:
            return default
        try:
            return json.loads(item)
        except ValueError as e:
            logger.warning('RedisStore.get: key "%s" holds invalid JSON: %s', key, e)
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            self.client.set(key, json.dumps(value))
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning('RedisStore.set error for key "%s": %s', key, e)
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning('RedisStore.remove error for key "%s": %s', key, e)

    def clear_all(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("RedisStore.clear_all error: %s", e)

    def close(self) -> None:
        self.client.close()


# ============================================
# DEFAULT STORE
# ============================================

_store: Optional[KeyValueStore] = None


def create_store(settings: Optional[Settings] = None) -> KeyValueStore:
    settings = settings or default_settings
    if settings.STORAGE_BACKEND == "redis":
        return RedisStore(settings.REDIS_URL, settings.STORAGE_KEY_PREFIX)
    if settings.STORAGE_BACKEND == "json":
        return JsonFileStore(Path(settings.STORAGE_PATH), settings.STORAGE_KEY_PREFIX)
    return MemoryStore(settings.STORAGE_KEY_PREFIX)


def get_store() -> KeyValueStore:
    """Store built from settings, created on first use."""
    global _store

    if _store is None:
        _store = create_store()

    return _store


def close_store():
    global _store

    if _store:
        _store.close()
        _store = None

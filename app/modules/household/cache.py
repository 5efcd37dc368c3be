"""Local durable cache for group data snapshots.

Snapshots live in two string slots per group (serialized data and a write
timestamp in epoch milliseconds), kept in a directory on local disk.
"""
import logging
import os
import tempfile
import time
from typing import Callable, Optional
from urllib.parse import quote

from app.modules.household.schemas import GroupData

logger = logging.getLogger(__name__)

CACHE_KEY = "group_data_cache"
CACHE_TIMESTAMP_KEY = "group_data_timestamp"


class LocalStorage:
    """String key/value slots stored one file per key."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + ".txt")

    def get_item(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove_item(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class GroupDataCache:
    def __init__(
        self,
        storage: LocalStorage,
        ttl_sec: float,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.ttl_ms = int(ttl_sec * 1000)
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    @staticmethod
    def _keys(group_id: int) -> tuple:
        return f"{CACHE_KEY}:{group_id}", f"{CACHE_TIMESTAMP_KEY}:{group_id}"

    def load(self, group_id: int) -> Optional[GroupData]:
        """Return the cached snapshot for a group if it is younger than the TTL.

        Missing, expired, or unreadable entries all come back as None.
        """
        data_key, timestamp_key = self._keys(group_id)
        try:
            cached = self.storage.get_item(data_key)
            timestamp = self.storage.get_item(timestamp_key)
            if cached and timestamp:
                age = self._now_ms() - int(timestamp)
                if age < self.ttl_ms:
                    return GroupData.model_validate_json(cached)
                logger.debug(f"Cache for group {group_id} is stale ({age}ms old)")
            return None
        except Exception as e:
            logger.error(f"Error loading group {group_id} from cache: {str(e)}")
            return None

    def save(self, group_id: int, data: GroupData) -> bool:
        """Write the snapshot and a fresh timestamp. Failures are logged, never raised."""
        data_key, timestamp_key = self._keys(group_id)
        try:
            self.storage.set_item(data_key, data.model_dump_json())
            self.storage.set_item(timestamp_key, str(self._now_ms()))
            return True
        except Exception as e:
            logger.error(f"Error saving group {group_id} to cache: {str(e)}")
            return False

    def invalidate(self, group_id: int) -> None:
        data_key, timestamp_key = self._keys(group_id)
        try:
            self.storage.remove_item(data_key)
            self.storage.remove_item(timestamp_key)
        except Exception as e:
            logger.error(f"Error invalidating cache for group {group_id}: {str(e)}")

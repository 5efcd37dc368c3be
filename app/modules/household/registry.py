"""Process-wide registry of group_id -> GroupDataStore."""
import asyncio
import logging
import threading
from typing import Callable, Optional, Tuple

from app.config.settings import settings
from app.database.supabase_client import get_service_supabase
from app.modules.household.cache import GroupDataCache, LocalStorage
from app.modules.household.service import HouseholdService
from app.modules.household.store import GroupDataStore

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: dict[int, GroupDataStore] = {}


def default_store_factory() -> GroupDataStore:
    cache = GroupDataCache(
        LocalStorage(settings.group_data_cache_dir),
        ttl_sec=settings.group_data_cache_ttl_sec,
    )
    return GroupDataStore(
        HouseholdService(get_service_supabase()),
        cache,
        refresh_interval=settings.group_data_refresh_interval_sec,
    )


_store_factory: Callable[[], GroupDataStore] = default_store_factory


def set_store_factory(factory: Optional[Callable[[], GroupDataStore]]) -> None:
    global _store_factory
    _store_factory = factory or default_store_factory


def get_or_create(group_id: int) -> Tuple[GroupDataStore, Optional[asyncio.Task]]:
    """Return the store for a group, activating a new one when needed.

    The second element is the initial fetch of a newly activated store, or None
    if the store already existed.
    """
    with _lock:
        store = _registry.get(group_id)
        if store is not None:
            return store, None
        store = _store_factory()
        _registry[group_id] = store
    logger.debug(f"Registered group data store for group {group_id}")
    return store, store.activate(group_id)


async def unregister(group_id: int) -> None:
    with _lock:
        store = _registry.pop(group_id, None)
    if store is not None:
        await store.close()
        logger.debug(f"Unregistered group data store for group {group_id}")


async def close_all() -> None:
    with _lock:
        stores = list(_registry.values())
        _registry.clear()
    for store in stores:
        try:
            await store.close()
        except Exception as e:
            logger.warning(f"Error closing group data store: {e}")

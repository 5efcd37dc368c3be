"""In-memory, relationship-enriched view of one household group.

A store holds the latest snapshot of a group's users, images and tasks, keeps a
copy in the local cache, refreshes itself on a fixed interval and applies task
updates optimistically.

Task updates are not rolled back when the remote write fails: the error is
raised to the caller, which decides whether to refetch or revert.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from fastapi import HTTPException

from app.modules.household.cache import GroupDataCache
from app.modules.household.enrichment import build_group_data
from app.modules.household.schemas import (
    AssignedTask,
    Group,
    GroupData,
    GroupDataResponse,
    ImageWithCreator,
    TaskWithAssignees,
    User,
)
from app.modules.household.service import HouseholdService

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_SEC = 300


def _error_message(exc: Exception) -> str:
    if isinstance(exc, HTTPException) and exc.detail:
        return str(exc.detail)
    return str(exc) or "Failed to load data"


class GroupDataStore:
    def __init__(
        self,
        service: HouseholdService,
        cache: GroupDataCache,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SEC,
    ):
        self.service = service
        self.cache = cache
        self.refresh_interval = refresh_interval
        self.group_id: Optional[int] = None
        self.loading = True
        self.error: Optional[str] = None
        self._data = GroupData()
        self._issued_seq = 0
        self._applied_seq = 0
        # Sequence numbers of fetches still running for the current group.
        self._in_flight: Set[int] = set()
        self._refresh_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    # Read model

    @property
    def data(self) -> GroupData:
        return self._data

    @property
    def group(self) -> Optional[Group]:
        return self._data.group

    @property
    def users(self) -> List[User]:
        return self._data.users

    @property
    def images(self) -> List[ImageWithCreator]:
        return self._data.images

    @property
    def tasks(self) -> List[TaskWithAssignees]:
        return self._data.tasks

    @property
    def assigned_tasks(self) -> List[AssignedTask]:
        return self._data.assigned_tasks

    @property
    def closed(self) -> bool:
        return self._closed

    def get_task(self, task_id: int) -> Optional[TaskWithAssignees]:
        for task in self._data.tasks:
            if task.id == task_id:
                return task
        return None

    def snapshot(self) -> GroupDataResponse:
        return GroupDataResponse(
            **self._data.model_dump(),
            loading=self.loading,
            error=self.error,
        )

    # Lifecycle

    def activate(self, group_id: Optional[int]) -> Optional[asyncio.Task]:
        """Switch the store to a group.

        Adopts a fresh cache entry immediately, then schedules a full fetch and
        arms the auto-refresh timer. Returns the scheduled fetch so callers that
        need fresh data can await it; returns None when no group is active.
        """
        if self._closed:
            raise RuntimeError("GroupDataStore is closed")

        self._stop_auto_refresh()
        previous_group_id = self.group_id
        self.group_id = group_id
        if group_id != previous_group_id:
            self._in_flight.clear()

        if group_id is None:
            self._data = GroupData()
            self.error = None
            self.loading = False
            return None

        if group_id != previous_group_id:
            self._data = GroupData()
            self.error = None
            self.loading = True

        cached = self.cache.load(group_id)
        if cached is not None:
            logger.debug(f"Adopted cached snapshot for group {group_id}")
            self._data = cached
            self.loading = False

        fetch_task = self._schedule(self.fetch())
        self._refresh_task = asyncio.create_task(self._auto_refresh_loop(group_id))
        return fetch_task

    async def close(self) -> None:
        """Stop the auto-refresh timer. In-flight fetches are left to finish and then ignored."""
        self._closed = True
        self._stop_auto_refresh()

    def _schedule(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _stop_auto_refresh(self) -> None:
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

    async def _auto_refresh_loop(self, group_id: int) -> None:
        """Background task that refetches the group every refresh interval"""
        while True:
            await asyncio.sleep(self.refresh_interval)
            logger.info(f"Auto-refreshing group data for group {group_id}")
            try:
                await self.fetch()
            except Exception as e:
                logger.error(f"Error in auto-refresh for group {group_id}: {str(e)}")

    # Fetch

    async def _load_group_data(self, group_id: int) -> GroupData:
        group, users, images, tasks = await asyncio.gather(
            asyncio.to_thread(self.service.get_group, group_id),
            asyncio.to_thread(self.service.list_users, group_id),
            asyncio.to_thread(self.service.list_images, group_id),
            asyncio.to_thread(self.service.list_tasks, group_id),
        )
        task_ids = [task.id for task in tasks]
        assigned_tasks = []
        if task_ids:
            assigned_tasks = await asyncio.to_thread(self.service.list_assigned_tasks, task_ids)
        return build_group_data(group, users, images, tasks, assigned_tasks)

    def _is_disposed(self, group_id: int) -> bool:
        return self._closed or self.group_id != group_id

    async def fetch(self) -> None:
        """Load the whole group from the remote store and replace the snapshot.

        Any failed read leaves the previous snapshot in place and sets `error`.
        Results from a fetch older than the last applied one are discarded.
        """
        group_id = self.group_id
        if group_id is None:
            self.loading = False
            return

        self._issued_seq += 1
        seq = self._issued_seq
        self._in_flight.add(seq)
        self.loading = True
        try:
            data = await self._load_group_data(group_id)
        except Exception as e:
            if self._is_disposed(group_id):
                logger.debug(f"Ignoring failed fetch for inactive group {group_id}")
                return
            if seq < self._applied_seq:
                logger.debug(f"Ignoring failure of superseded fetch #{seq} for group {group_id}")
                return
            self.error = _error_message(e)
            logger.error(f"Error fetching group data for group {group_id}: {str(e)}")
            return
        else:
            if self._is_disposed(group_id):
                logger.debug(f"Ignoring late fetch for inactive group {group_id}")
                return
            if seq < self._applied_seq:
                logger.debug(f"Discarding stale fetch #{seq} for group {group_id}")
                return
            self._applied_seq = seq
            self._data = data
            self.error = None
            self.cache.save(group_id, data)
            logger.info(
                f"Loaded group {group_id}: {len(data.users)} users, "
                f"{len(data.images)} images, {len(data.tasks)} tasks"
            )
        finally:
            self._in_flight.discard(seq)
            if not self._in_flight and not self._is_disposed(group_id):
                self.loading = False

    async def refetch(self) -> None:
        """Fetch straight from the remote store, ignoring the cache."""
        await self.fetch()

    # Mutation

    def _merge_task(self, task_id: int, updates: Dict[str, Any]) -> Optional[TaskWithAssignees]:
        merged = None
        tasks = []
        for task in self._data.tasks:
            if task.id == task_id:
                task = TaskWithAssignees.model_validate({**task.model_dump(), **updates})
                merged = task
            tasks.append(task)
        self._data = self._data.model_copy(update={"tasks": tasks})
        return merged

    async def update_task(self, task_id: int, updates: Dict[str, Any]) -> Optional[TaskWithAssignees]:
        """Optimistically apply `updates` to a task, then write them remotely.

        The local snapshot and cache change before the remote call is issued.
        If the remote write fails the exception propagates and the local change
        stays as it is.
        """
        group_id = self.group_id
        task = self._merge_task(task_id, updates)
        if group_id is not None:
            self.cache.save(group_id, self._data)

        try:
            await asyncio.to_thread(self.service.update_task, task_id, updates)
        except Exception as e:
            logger.error(f"Error updating task {task_id}: {str(e)}")
            raise
        return task

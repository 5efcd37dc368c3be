"""Shared fixtures: an in-memory household service and a store wired to a temp cache."""
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi import HTTPException

from app.modules.household.cache import GroupDataCache, LocalStorage
from app.modules.household.schemas import AssignedTask, Group, Image, Task, User
from app.modules.household.store import GroupDataStore

GROUP_ID = 7


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHouseholdService:
    """Serves rows from memory. Set `fail_on` to a method name to make it raise,
    or put a threading.Event in `gates` (keyed by method name, or by (name, first argument))
    to hold a call until the event is set."""

    def __init__(self):
        self.groups: Dict[int, Group] = {}
        self.users: List[User] = []
        self.images: List[Image] = []
        self.tasks: List[Task] = []
        self.assigned_tasks: List[AssignedTask] = []
        self.calls: List[tuple] = []
        self.fail_on: set = set()
        self.gates: Dict[Any, threading.Event] = {}
        self.on_update = None

    def _enter(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        gate = self.gates.get(name)
        if args and not isinstance(args[0], list):
            gate = self.gates.get((name, args[0]), gate)
        if gate is not None:
            gate.wait(timeout=5)
        if name in self.fail_on:
            raise HTTPException(status_code=500, detail=f"{name} failed")

    def called(self, name: str) -> int:
        return len([c for c in self.calls if c[0] == name])

    def get_group(self, group_id: int) -> Group:
        self._enter("get_group", group_id)
        if group_id not in self.groups:
            raise HTTPException(status_code=404, detail="Group not found")
        return self.groups[group_id]

    def list_users(self, group_id: int) -> List[User]:
        self._enter("list_users", group_id)
        return sorted([u for u in self.users if u.group_id == group_id], key=lambda u: u.name)

    def list_images(self, group_id: int) -> List[Image]:
        self._enter("list_images", group_id)
        return [i for i in self.images if i.group_id == group_id]

    def list_tasks(self, group_id: int) -> List[Task]:
        self._enter("list_tasks", group_id)
        return [t for t in self.tasks if t.group_id == group_id]

    def list_assigned_tasks(self, task_ids: List[int]) -> List[AssignedTask]:
        self._enter("list_assigned_tasks", list(task_ids))
        return [a for a in self.assigned_tasks if a.task_id in task_ids]

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Optional[Task]:
        if self.on_update is not None:
            self.on_update(task_id, updates)
        self._enter("update_task", task_id, dict(updates))
        return None


def make_user(user_id: int, name: str, group_id: int = GROUP_ID) -> User:
    return User(id=user_id, name=name, email=f"{name.lower()}@example.com", group_id=group_id)


def make_task(task_id: int, name: str = "Dishes", group_id: int = GROUP_ID, **kwargs) -> Task:
    kwargs.setdefault("due_date", datetime(2026, 10, 20, 18, 0, tzinfo=timezone.utc))
    return Task(id=task_id, name=name, group_id=group_id, **kwargs)


@pytest.fixture
def service() -> FakeHouseholdService:
    service = FakeHouseholdService()
    service.groups[GROUP_ID] = Group(id=GROUP_ID, building="Maple Hall", apt_num="4B")
    service.users = [make_user(1, "Alice"), make_user(2, "Bob")]
    service.tasks = [make_task(10, assigned_to=1)]
    service.assigned_tasks = [AssignedTask(task_id=10, user_id=1), AssignedTask(task_id=10, user_id=2)]
    service.images = [
        Image(id=100, url="https://cdn.example.com/a.jpg", title="Party", category="events",
              group_id=GROUP_ID, user_id=1),
    ]
    return service


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock) -> GroupDataCache:
    return GroupDataCache(LocalStorage(str(tmp_path / "cache")), ttl_sec=300, clock=clock)


@pytest.fixture
async def store(service, cache):
    store = GroupDataStore(service, cache, refresh_interval=3600)
    yield store
    await store.close()

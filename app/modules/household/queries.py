"""Read-only queries, groupings and reports over a group data snapshot."""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from app.modules.household.schemas import (
    AssignmentDivergence,
    GroupData,
    GroupStats,
    ImageWithCreator,
    LeaderboardEntry,
    TasksByStatus,
    TaskWithAssignees,
    User,
    UserTaskStats,
)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # Rows without an offset are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_overdue(task: TaskWithAssignees, now: datetime) -> bool:
    return not task.completed and task.due_date is not None and _aware(task.due_date) < now


def _rate(part: int, total: int) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def get_tasks_by_user(data: GroupData, user_id: int) -> List[TaskWithAssignees]:
    return [task for task in data.tasks if user_id in task.assigned_task_ids]


def get_images_by_creator(data: GroupData, user_id: int) -> List[ImageWithCreator]:
    return [image for image in data.images if image.user_id == user_id]


def get_incomplete_tasks(data: GroupData) -> List[TaskWithAssignees]:
    return [task for task in data.tasks if not task.completed]


def get_completed_tasks(data: GroupData) -> List[TaskWithAssignees]:
    return [task for task in data.tasks if task.completed]


def get_tasks_due_today(data: GroupData, now: Optional[datetime] = None) -> List[TaskWithAssignees]:
    today = _now(now).date()
    return [
        task for task in data.tasks
        if task.due_date is not None and _aware(task.due_date).date() == today
    ]


def get_overdue_tasks(data: GroupData, now: Optional[datetime] = None) -> List[TaskWithAssignees]:
    now = _now(now)
    return [task for task in data.tasks if _is_overdue(task, now)]


def get_tasks_due_within(data: GroupData, days: int, now: Optional[datetime] = None) -> List[TaskWithAssignees]:
    """Incomplete tasks due between now and `days` days from now, inclusive."""
    now = _now(now)
    until = now + timedelta(days=days)
    return [
        task for task in data.tasks
        if not task.completed
        and task.due_date is not None
        and now <= _aware(task.due_date) <= until
    ]


def get_unassigned_tasks(data: GroupData) -> List[TaskWithAssignees]:
    return [task for task in data.tasks if not task.assigned_task_ids]


def group_tasks_by_status(data: GroupData) -> TasksByStatus:
    return TasksByStatus(
        completed=get_completed_tasks(data),
        incomplete=get_incomplete_tasks(data),
    )


def group_tasks_by_assignee(data: GroupData) -> Dict[int, List[TaskWithAssignees]]:
    grouped: Dict[int, List[TaskWithAssignees]] = defaultdict(list)
    for task in data.tasks:
        for assignee in task.assignees:
            grouped[assignee.id].append(task)
    return dict(grouped)


def group_images_by_category(data: GroupData) -> Dict[str, List[ImageWithCreator]]:
    grouped: Dict[str, List[ImageWithCreator]] = defaultdict(list)
    for image in data.images:
        grouped[image.category or ""].append(image)
    return dict(grouped)


def group_images_by_creator(data: GroupData) -> Dict[Optional[int], List[ImageWithCreator]]:
    grouped: Dict[Optional[int], List[ImageWithCreator]] = defaultdict(list)
    for image in data.images:
        grouped[image.user_id].append(image)
    return dict(grouped)


def get_user_task_stats(data: GroupData, user_id: int, now: Optional[datetime] = None) -> UserTaskStats:
    now = _now(now)
    tasks = get_tasks_by_user(data, user_id)
    completed = len([t for t in tasks if t.completed])
    return UserTaskStats(
        total=len(tasks),
        completed=completed,
        incomplete=len(tasks) - completed,
        overdue=len([t for t in tasks if _is_overdue(t, now)]),
        completion_rate=_rate(completed, len(tasks)),
    )


def get_group_stats(data: GroupData, now: Optional[datetime] = None) -> GroupStats:
    completed = len(get_completed_tasks(data))
    return GroupStats(
        total_users=len(data.users),
        total_tasks=len(data.tasks),
        completed_tasks=completed,
        incomplete_tasks=len(data.tasks) - completed,
        total_images=len(data.images),
        overdue_tasks=len(get_overdue_tasks(data, now)),
        unassigned_tasks=len(get_unassigned_tasks(data)),
        task_completion_rate=_rate(completed, len(data.tasks)),
    )


def get_task_completion_leaderboard(data: GroupData, now: Optional[datetime] = None) -> List[LeaderboardEntry]:
    """Members ranked by completed task count; ties keep name order."""
    entries = [
        LeaderboardEntry(user=user, **get_user_task_stats(data, user.id, now).model_dump())
        for user in data.users
    ]
    return sorted(entries, key=lambda entry: entry.completed, reverse=True)


def get_assignment_divergences(data: GroupData) -> List[AssignmentDivergence]:
    """Tasks whose primary assignee is missing from their junction assignees."""
    return [
        AssignmentDivergence(
            task_id=task.id,
            assigned_to=task.assigned_to,
            assigned_task_ids=task.assigned_task_ids,
        )
        for task in data.tasks
        if task.assigned_to is not None and task.assigned_to not in task.assigned_task_ids
    ]


def export_to_json(data: GroupData) -> str:
    return data.model_dump_json(indent=2)


def generate_summary_report(data: GroupData, now: Optional[datetime] = None) -> str:
    now = _now(now)
    stats = get_group_stats(data, now)
    building = data.group.building if data.group else None
    apt_num = data.group.apt_num if data.group else None

    lines = [
        "=== Group Summary Report ===",
        f"Generated: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        "",
        "GROUP INFORMATION",
        f"- Building: {building}",
        f"- Apartment: {apt_num}",
        f"- Total Roommates: {stats.total_users}",
        "",
        "TASK STATISTICS",
        f"- Total Tasks: {stats.total_tasks}",
        f"- Completed: {stats.completed_tasks} ({stats.task_completion_rate:.1f}%)",
        f"- Incomplete: {stats.incomplete_tasks}",
        f"- Overdue: {stats.overdue_tasks}",
        f"- Unassigned: {stats.unassigned_tasks}",
        "",
        "GALLERY STATISTICS",
        f"- Total Images: {stats.total_images}",
        "- Images by Category:",
    ]
    for category, images in group_images_by_category(data).items():
        lines.append(f"  - {category}: {len(images)}")

    lines += ["", "TASK COMPLETION LEADERBOARD"]
    for position, entry in enumerate(get_task_completion_leaderboard(data, now), start=1):
        lines.append(
            f"{position}. {entry.user.name}: {entry.completed} completed ({entry.completion_rate:.1f}%)"
        )
    return "\n".join(lines) + "\n"


def search_users(data: GroupData, query: str) -> List[User]:
    q = query.lower()
    return [
        user for user in data.users
        if q in user.name.lower() or q in user.email.lower()
    ]


def search_tasks(data: GroupData, query: str) -> List[TaskWithAssignees]:
    q = query.lower()
    return [
        task for task in data.tasks
        if q in task.name.lower() or q in (task.description or "").lower()
    ]


def search_images(data: GroupData, query: str) -> List[ImageWithCreator]:
    q = query.lower()
    return [image for image in data.images if q in (image.title or "").lower()]

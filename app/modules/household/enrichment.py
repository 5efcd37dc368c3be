import logging
from typing import Dict, List, Optional

from app.modules.household.schemas import (
    AssignedTask,
    Group,
    GroupData,
    Image,
    ImageWithCreator,
    Task,
    TaskWithAssignees,
    User,
)

logger = logging.getLogger(__name__)


def index_users(users: List[User]) -> Dict[int, User]:
    return {user.id: user for user in users}


def index_assignments(tasks: List[Task], assigned_tasks: List[AssignedTask]) -> Dict[int, List[int]]:
    """Map every task id to its junction user ids, in row order. Tasks without rows map to []."""
    assignments: Dict[int, List[int]] = {task.id: [] for task in tasks}
    for row in assigned_tasks:
        assignments.setdefault(row.task_id, []).append(row.user_id)
    return assignments


def enrich_images(images: List[Image], users_by_id: Dict[int, User]) -> List[ImageWithCreator]:
    return [
        ImageWithCreator(**image.model_dump(), creator=users_by_id.get(image.user_id))
        for image in images
    ]


def enrich_tasks(
    tasks: List[Task],
    users_by_id: Dict[int, User],
    assignments: Dict[int, List[int]],
) -> List[TaskWithAssignees]:
    enriched = []
    for task in tasks:
        user_ids = assignments.get(task.id, [])
        # Dangling user ids stay in assigned_task_ids but produce no assignee.
        assignees = [users_by_id[user_id] for user_id in user_ids if user_id in users_by_id]
        enriched.append(
            TaskWithAssignees(
                **task.model_dump(),
                assignees=assignees,
                assigned_task_ids=list(user_ids),
            )
        )
        if task.assigned_to is not None and task.assigned_to not in user_ids:
            logger.warning(
                f"Task {task.id} is assigned_to user {task.assigned_to} "
                f"but its assignees are {user_ids}"
            )
    return enriched


def build_group_data(
    group: Optional[Group],
    users: List[User],
    images: List[Image],
    tasks: List[Task],
    assigned_tasks: List[AssignedTask],
) -> GroupData:
    """Join flat query results into one snapshot. Indices are rebuilt on every call."""
    users_by_id = index_users(users)
    assignments = index_assignments(tasks, assigned_tasks)
    return GroupData(
        group=group,
        users=users,
        images=enrich_images(images, users_by_id),
        tasks=enrich_tasks(tasks, users_by_id, assignments),
        assigned_tasks=assigned_tasks,
    )

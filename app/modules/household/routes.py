from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse, Response
from app.core.dependencies import (
    get_current_group_id, get_current_profile, get_household_service
)
from app.database.supabase_client import get_supabase
from app.modules.household import queries, registry
from app.modules.household.image_storage import ImageStorage
from app.modules.household.schemas import (
    AssignmentDivergence, GroupData, GroupDataResponse, GroupStats, ImageCreate,
    ImageWithCreator, LeaderboardEntry, TaskUpdate, TaskWithAssignees, User,
    UserTaskStats
)
from app.modules.household.service import HouseholdService
from app.modules.household.store import GroupDataStore
from supabase import Client
from typing import List, Literal, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/households", tags=["households"])


async def get_group_store(group_id: Optional[int] = Depends(get_current_group_id)) -> Optional[GroupDataStore]:
    """Store for the caller's group. A store with nothing to show yet is awaited on its first fetch."""
    if group_id is None:
        return None
    store, initial_fetch = registry.get_or_create(group_id)
    if initial_fetch is not None and store.loading:
        await initial_fetch
    return store


def _data(store: Optional[GroupDataStore]) -> GroupData:
    return store.data if store is not None else GroupData()


def _require_store(store: Optional[GroupDataStore]) -> GroupDataStore:
    if store is None:
        raise HTTPException(status_code=404, detail="You are not a member of any group")
    return store


@router.get("/me", response_model=GroupDataResponse)
async def get_group_data(store: Optional[GroupDataStore] = Depends(get_group_store)):
    """Enriched snapshot of the caller's group, with loading/error state"""
    if store is None:
        return GroupDataResponse(loading=False)
    return store.snapshot()


@router.post("/me/refetch", response_model=GroupDataResponse)
async def refetch_group_data(store: Optional[GroupDataStore] = Depends(get_group_store)):
    """Reload the group from the database, bypassing the cache"""
    if store is None:
        return GroupDataResponse(loading=False)
    await store.refetch()
    return store.snapshot()


@router.patch("/me/tasks/{task_id}", response_model=TaskWithAssignees)
async def update_task(
    task_id: int,
    task_update: TaskUpdate,
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """Optimistically update a task. On failure the caller should refetch or revert."""
    store = _require_store(store)
    if store.get_task(task_id) is None:
        raise HTTPException(status_code=404, detail="Task not found")
    updates = task_update.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    return await store.update_task(task_id, updates)


@router.get("/me/tasks", response_model=List[TaskWithAssignees])
async def list_tasks(
    user_id: Optional[int] = None,
    status: Optional[Literal["completed", "incomplete", "overdue", "unassigned", "today"]] = None,
    due_within_days: Optional[int] = Query(default=None, ge=0),
    q: Optional[str] = None,
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """List tasks, optionally filtered by assignee, status, due window and text"""
    data = _data(store)
    if status == "completed":
        tasks = queries.get_completed_tasks(data)
    elif status == "incomplete":
        tasks = queries.get_incomplete_tasks(data)
    elif status == "overdue":
        tasks = queries.get_overdue_tasks(data)
    elif status == "unassigned":
        tasks = queries.get_unassigned_tasks(data)
    elif status == "today":
        tasks = queries.get_tasks_due_today(data)
    else:
        tasks = data.tasks

    if due_within_days is not None:
        due_ids = {t.id for t in queries.get_tasks_due_within(data, due_within_days)}
        tasks = [t for t in tasks if t.id in due_ids]
    if user_id is not None:
        user_task_ids = {t.id for t in queries.get_tasks_by_user(data, user_id)}
        tasks = [t for t in tasks if t.id in user_task_ids]
    if q:
        matching_ids = {t.id for t in queries.search_tasks(data, q)}
        tasks = [t for t in tasks if t.id in matching_ids]
    return tasks


@router.get("/me/tasks/grouped")
async def group_tasks(
    by: Literal["status", "assignee"] = "status",
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """Tasks grouped by completion status or by assignee id"""
    data = _data(store)
    if by == "assignee":
        return queries.group_tasks_by_assignee(data)
    return queries.group_tasks_by_status(data)


@router.get("/me/images", response_model=List[ImageWithCreator])
async def list_images(
    category: Optional[str] = None,
    creator_id: Optional[int] = None,
    q: Optional[str] = None,
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """List gallery images, newest first"""
    data = _data(store)
    images = queries.get_images_by_creator(data, creator_id) if creator_id is not None else data.images
    if category is not None:
        images = [image for image in images if image.category == category]
    if q:
        matching_ids = {image.id for image in queries.search_images(data, q)}
        images = [image for image in images if image.id in matching_ids]
    return images


@router.get("/me/images/grouped")
async def group_images(
    by: Literal["category", "creator"] = "category",
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """Images grouped by category or by creator id"""
    data = _data(store)
    if by == "creator":
        return queries.group_images_by_creator(data)
    return queries.group_images_by_category(data)


@router.post("/me/images", response_model=ImageWithCreator, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    title: str = Form(...),
    category: str = Form(...),
    profile: User = Depends(get_current_profile),
    store: Optional[GroupDataStore] = Depends(get_group_store),
    service: HouseholdService = Depends(get_household_service),
    supabase: Client = Depends(get_supabase)
):
    """Upload an image to the group gallery, then refresh the group's data"""
    store = _require_store(store)
    content = await file.read()
    storage = ImageStorage(supabase)
    storage.validate(file.content_type, len(content))

    path = ImageStorage.build_path(profile.group_id, category, file.filename)
    url = storage.upload_file(content, path, file.content_type)
    try:
        image = service.create_image(ImageCreate(
            url=url,
            title=title,
            category=category,
            group_id=profile.group_id,
            user_id=profile.id,
        ))
    except HTTPException:
        storage.delete_file(path)
        raise

    store.cache.invalidate(profile.group_id)
    await store.refetch()
    for enriched in store.images:
        if enriched.id == image.id:
            return enriched
    return ImageWithCreator(**image.model_dump(), creator=profile)


@router.get("/me/users", response_model=List[User])
async def list_users(
    q: Optional[str] = None,
    store: Optional[GroupDataStore] = Depends(get_group_store)
):
    """Roommate contacts, ordered by name"""
    data = _data(store)
    return queries.search_users(data, q) if q else data.users


@router.get("/me/stats", response_model=GroupStats)
async def get_group_stats(store: Optional[GroupDataStore] = Depends(get_group_store)):
    return queries.get_group_stats(_data(store))


@router.get("/me/stats/users/{user_id}", response_model=UserTaskStats)
async def get_user_stats(user_id: int, store: Optional[GroupDataStore] = Depends(get_group_store)):
    return queries.get_user_task_stats(_data(store), user_id)


@router.get("/me/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(store: Optional[GroupDataStore] = Depends(get_group_store)):
    return queries.get_task_completion_leaderboard(_data(store))


@router.get("/me/divergences", response_model=List[AssignmentDivergence])
async def get_divergences(store: Optional[GroupDataStore] = Depends(get_group_store)):
    """Tasks whose primary assignee is not among their assignees"""
    return queries.get_assignment_divergences(_data(store))


@router.get("/me/report", response_class=PlainTextResponse)
async def get_report(store: Optional[GroupDataStore] = Depends(get_group_store)):
    return queries.generate_summary_report(_data(store))


@router.get("/me/export")
async def export_group_data(store: Optional[GroupDataStore] = Depends(get_group_store)):
    return Response(content=queries.export_to_json(_data(store)), media_type="application/json")

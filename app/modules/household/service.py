import logging
from supabase import Client
from app.modules.household.schemas import (
    Group, User, Image, Task, AssignedTask, ImageCreate
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class HouseholdService:
    """Scoped reads and writes against the household tables.

    Every call is a single blocking PostgREST request; callers that need
    concurrency run these in worker threads.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_group(self, group_id: int) -> Group:
        """Get group by ID"""
        try:
            result = self.supabase.table("Group")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching group {group_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load group: {str(e)}")

        if not result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        return Group(**result.data[0])

    def list_users(self, group_id: int) -> List[User]:
        """List the group's members, ordered by name"""
        try:
            result = self.supabase.table("User")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("name", desc=False)\
                .execute()
            users = [User(**user) for user in result.data or []]
            logger.debug(f"Fetched {len(users)} users for group {group_id}")
            return users
        except Exception as e:
            logger.error(f"Error fetching users for group {group_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load users: {str(e)}")

    def list_images(self, group_id: int) -> List[Image]:
        """List the group's gallery, newest first"""
        try:
            result = self.supabase.table("Image")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .execute()
            return [Image(**image) for image in result.data or []]
        except Exception as e:
            logger.error(f"Error fetching images for group {group_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load images: {str(e)}")

    def list_tasks(self, group_id: int) -> List[Task]:
        """List the group's tasks, soonest due first"""
        try:
            result = self.supabase.table("Task")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("due_date", desc=False)\
                .execute()
            return [Task(**task) for task in result.data or []]
        except Exception as e:
            logger.error(f"Error fetching tasks for group {group_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load tasks: {str(e)}")

    def list_assigned_tasks(self, task_ids: List[int]) -> List[AssignedTask]:
        """List junction rows for the given tasks. An empty id list never hits the network."""
        if not task_ids:
            return []
        try:
            result = self.supabase.table("assigned_tasks")\
                .select("*")\
                .in_("task_id", task_ids)\
                .execute()
            return [AssignedTask(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Error fetching assigned tasks: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load task assignments: {str(e)}")

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Optional[Task]:
        """Apply a partial update to a task. Returns the updated row when the API echoes one."""
        try:
            result = self.supabase.table("Task")\
                .update(jsonable_encoder(updates))\
                .eq("id", task_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating task {task_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to update task: {str(e)}")

        if not result.data:
            return None
        return Task(**result.data[0])

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Resolve the household profile row for a signed-in account"""
        try:
            result = self.supabase.table("User")\
                .select("*")\
                .eq("email", email)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching user by email: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to load profile: {str(e)}")

        if not result.data:
            return None
        return User(**result.data[0])

    def create_image(self, image_data: ImageCreate) -> Image:
        """Insert a gallery row for an already-uploaded object"""
        try:
            result = self.supabase.table("Image")\
                .insert(jsonable_encoder(image_data.model_dump()))\
                .execute()
        except Exception as e:
            logger.error(f"Error creating image row: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to save image: {str(e)}")

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to save image")
        return Image(**result.data[0])

from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime


class Group(BaseModel):
    id: int
    building: Optional[str] = None
    apt_num: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class User(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    dob: Optional[date] = None
    bio: Optional[str] = None
    allergies: Optional[str] = None
    special_needs: Optional[str] = None
    pets: Optional[str] = None
    group_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Image(BaseModel):
    id: int
    url: str
    title: Optional[str] = None
    category: Optional[str] = None
    group_id: Optional[int] = None
    user_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("user_id", "created_by"))
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Task(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    completed: bool = False
    due_date: Optional[datetime] = None
    group_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignedTask(BaseModel):
    task_id: int
    user_id: int
    assigned_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImageWithCreator(Image):
    creator: Optional[User] = None


class TaskWithAssignees(Task):
    assignees: List[User] = Field(default_factory=list)
    assigned_task_ids: List[int] = Field(default_factory=list)


class GroupData(BaseModel):
    """Full enriched snapshot of one group; also the shape written to the local cache."""
    group: Optional[Group] = None
    users: List[User] = Field(default_factory=list)
    images: List[ImageWithCreator] = Field(default_factory=list)
    tasks: List[TaskWithAssignees] = Field(default_factory=list)
    assigned_tasks: List[AssignedTask] = Field(default_factory=list)


class GroupDataResponse(GroupData):
    loading: bool = False
    error: Optional[str] = None


class TaskUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None

    @field_validator("name", "completed")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ImageCreate(BaseModel):
    url: str
    title: str
    category: str
    group_id: int
    user_id: Optional[int] = None


class UserTaskStats(BaseModel):
    total: int
    completed: int
    incomplete: int
    overdue: int
    completion_rate: float


class LeaderboardEntry(UserTaskStats):
    user: User


class GroupStats(BaseModel):
    total_users: int
    total_tasks: int
    completed_tasks: int
    incomplete_tasks: int
    total_images: int
    overdue_tasks: int
    unassigned_tasks: int
    task_completion_rate: float


class AssignmentDivergence(BaseModel):
    """A task whose primary assignee is not among its junction assignees."""
    task_id: int
    assigned_to: int
    assigned_task_ids: List[int]


class TasksByStatus(BaseModel):
    completed: List[TaskWithAssignees]
    incomplete: List[TaskWithAssignees]

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tasktracker.models.task import Task, TaskPriority, TaskStatus, is_task_overdue
from tasktracker.models.user import User
from tasktracker.schemas.activity import ActivityLogRead
from tasktracker.schemas.user import UserSummary


class TaskCreate(BaseModel):
    # 길이/개수 제약은 services.validation에서 한 번에 검사
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    assignee: Optional[UUID] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    assignee: Optional[UUID] = None


class BulkTaskUpdate(BaseModel):
    task_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    updates: TaskUpdate


class TaskRead(BaseModel):
    task_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    assignee_id: UUID
    created_by_id: UUID
    assignee: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    is_overdue: bool = False

    @classmethod
    def from_task(cls, task: Task, users: Dict[UUID, User] | None = None) -> "TaskRead":
        users = users or {}
        assignee = users.get(task.assignee_id)
        creator = users.get(task.created_by_id)
        return cls(
            task_id=task.task_id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            tags=list(task.tags or []),
            assignee_id=task.assignee_id,
            created_by_id=task.created_by_id,
            assignee=UserSummary.model_validate(assignee) if assignee else None,
            created_by=UserSummary.model_validate(creator) if creator else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
            is_overdue=is_task_overdue(task.due_date, task.status),
        )


class TaskDetail(TaskRead):
    activity_history: List[ActivityLogRead] = Field(default_factory=list)

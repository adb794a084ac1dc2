from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from tasktracker.models.activity_log import ActivityAction
from tasktracker.models.task import TaskPriority, TaskStatus
from tasktracker.schemas.user import UserSummary

T = TypeVar("T")


class FieldChange(BaseModel, Generic[T]):
    model_config = ConfigDict(populate_by_name=True)

    from_: T = Field(alias="from")
    to: T


class TaskChanges(BaseModel):
    """Field-level diff of one task mutation; only changed fields are set."""

    title: Optional[FieldChange[str]] = None
    description: Optional[FieldChange[Optional[str]]] = None
    status: Optional[FieldChange[TaskStatus]] = None
    priority: Optional[FieldChange[TaskPriority]] = None
    due_date: Optional[FieldChange[Optional[datetime]]] = None
    tags: Optional[FieldChange[List[str]]] = None
    assignee: Optional[FieldChange[UUID]] = None

    @property
    def changed_fields(self) -> List[str]:
        return sorted(self.model_fields_set)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def to_json(self) -> Optional[Dict[str, Any]]:
        if self.is_empty():
            return None
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ActivityLogRead(BaseModel):
    log_id: UUID
    task_id: UUID
    user_id: UUID
    action: ActivityAction
    changes: Optional[Dict[str, Any]] = None
    timestamp: datetime
    user: Optional[UserSummary] = None
    task_title: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

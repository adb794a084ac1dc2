# tasktracker/routers/task.py
from datetime import datetime
from enum import Enum
from typing import List, Optional, Type, TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from tasktracker.core.errors import ValidationError
from tasktracker.db.session import get_session
from tasktracker.dependencies.auth import get_current_user
from tasktracker.models.task import TaskPriority, TaskStatus
from tasktracker.models.user import User
from tasktracker.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Pagination, envelope
from tasktracker.schemas.task import BulkTaskUpdate, TaskCreate, TaskDetail, TaskUpdate
from tasktracker.services import activity
from tasktracker.services.task_service import TaskFilters, TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])

E = TypeVar("E", bound=Enum)


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_enum_list(raw: Optional[str], enum_cls: Type[E], label: str) -> List[E]:
    values: List[E] = []
    bad: List[str] = []
    for part in _split_csv(raw):
        try:
            values.append(enum_cls(part.lower()))
        except ValueError:
            bad.append(part)
    if bad:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError([f"Invalid {label}: {', '.join(bad)} (allowed: {allowed})"])
    return values


@router.get("")
def list_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status_: Optional[str] = Query(None, alias="status", description="콤마 구분 (todo,in-progress,done)"),
    priority: Optional[str] = Query(None, description="콤마 구분 (low,medium,high,urgent)"),
    assignee: Optional[UUID] = None,
    created_by: Optional[UUID] = None,
    tags: Optional[str] = Query(None, description="콤마 구분, 하나라도 일치하면 포함"),
    search: Optional[str] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    overdue: Optional[bool] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    filters = TaskFilters(
        status=_parse_enum_list(status_, TaskStatus, "status"),
        priority=_parse_enum_list(priority, TaskPriority, "priority"),
        assignee=assignee,
        created_by=created_by,
        tags=[t.lower() for t in _split_csv(tags)],
        search=search,
        due_from=due_from,
        due_to=due_to,
        overdue=overdue,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    service = TaskService(db)
    tasks, total = service.list_tasks(user, filters, page=page, limit=limit)
    return envelope(
        service.serialize(tasks),
        "Tasks retrieved successfully",
        Pagination.build(page=page, limit=limit, total=total),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = TaskService(db)
    task = service.create_task(user, body.model_dump(exclude_unset=True))
    return envelope(service.serialize([task])[0], "Task created successfully")


# 고정 경로는 /{task_id} 보다 먼저 등록해야 매칭됨
@router.get("/overdue")
def list_overdue_tasks(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = TaskService(db)
    tasks = service.overdue_tasks(user)
    return envelope(service.serialize(tasks), "Overdue tasks retrieved successfully")


@router.get("/assignee/{assignee_id}")
def list_tasks_by_assignee(
    assignee_id: UUID,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = TaskService(db)
    tasks = service.tasks_by_assignee(user, assignee_id)
    return envelope(service.serialize(tasks), "Tasks retrieved successfully")


@router.patch("/bulk")
def bulk_update_tasks(
    body: BulkTaskUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    updates = body.updates.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError(["No updates provided"])
    count = TaskService(db).bulk_update(user, body.task_ids, updates)
    return envelope({"updated_count": count}, f"{count} task(s) updated successfully")


@router.get("/{task_id}")
def get_task(
    task_id: UUID,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = TaskService(db)
    task, history = service.get_task(user, task_id)
    read = service.serialize([task])[0]
    detail = TaskDetail(
        **read.model_dump(),
        activity_history=activity.describe_activity(db, history),
    )
    return envelope(detail, "Task retrieved successfully")


@router.patch("/{task_id}")
def update_task(
    task_id: UUID,
    body: TaskUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    service = TaskService(db)
    task, changes = service.update_task(user, task_id, body.model_dump(exclude_unset=True))
    return envelope(
        {"task": service.serialize([task])[0], "changes": changes.to_json()},
        "Task updated successfully",
    )


@router.delete("/{task_id}")
def delete_task(
    task_id: UUID,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    TaskService(db).delete_task(user, task_id)
    return envelope(None, "Task deleted successfully")

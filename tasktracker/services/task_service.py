"""
Task workflow.

Every mutation goes through the permission policy, writes the task and stages
exactly one activity entry, then commits both together. Any failure in that
sequence (including the activity append) rolls the unit back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import sqlalchemy as sa
from sqlmodel import Session, col, func, select

from tasktracker.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from tasktracker.core.time_utils import utc_now
from tasktracker.db.session import json_dumps
from tasktracker.models.activity_log import ActivityAction, ActivityLog
from tasktracker.models.task import PRIORITY_RANK, Task, TaskPriority, TaskStatus
from tasktracker.models.user import User, UserRole
from tasktracker.schemas.activity import TaskChanges
from tasktracker.schemas.task import TaskRead
from tasktracker.services import activity
from tasktracker.services.activity import load_users
from tasktracker.services.permissions import TaskAction, can_assign, can_perform
from tasktracker.services.validation import normalize_task_fields, validate_task_fields

log = logging.getLogger(__name__)

SORTABLE_FIELDS = ("created_at", "updated_at", "due_date", "priority", "status", "title")


@dataclass
class TaskFilters:
    status: List[TaskStatus] = field(default_factory=list)
    priority: List[TaskPriority] = field(default_factory=list)
    assignee: Optional[UUID] = None
    created_by: Optional[UUID] = None
    tags: List[str] = field(default_factory=list)
    search: Optional[str] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    overdue: Optional[bool] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


def overdue_clause(now: datetime):
    return sa.and_(
        col(Task.due_date).is_not(None),
        col(Task.due_date) < now,
        col(Task.status) != TaskStatus.DONE,
    )


def member_scope_clause(user_id: UUID):
    return sa.or_(Task.assignee_id == user_id, Task.created_by_id == user_id)


class TaskService:
    """Task CRUD and audit logging for one request's session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _get_or_404(self, task_id: UUID) -> Task:
        task = self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _check_assignee(self, actor: User, assignee_id: UUID) -> None:
        if not can_assign(actor.role, actor.user_id, assignee_id):
            raise PermissionDeniedError("Members can only assign tasks to themselves")
        if assignee_id != actor.user_id and self.db.get(User, assignee_id) is None:
            raise NotFoundError("Assignee not found")

    def _apply_changes(self, task: Task, changes: TaskChanges, fields: Dict[str, Any], now: datetime) -> None:
        for key in changes.changed_fields:
            setattr(task, activity.TRACKED_FIELDS[key], fields[key])
        if changes.status is not None:
            if changes.status.to == TaskStatus.DONE:
                task.completed_at = now
            elif changes.status.from_ == TaskStatus.DONE:
                task.completed_at = None
        if not changes.is_empty():
            task.updated_at = now

    def serialize(self, tasks: Sequence[Task]) -> List[TaskRead]:
        users = load_users(
            self.db,
            [t.assignee_id for t in tasks] + [t.created_by_id for t in tasks],
        )
        return [TaskRead.from_task(t, users) for t in tasks]

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_task(self, actor: User, task_id: UUID) -> Tuple[Task, List[ActivityLog]]:
        task = self._get_or_404(task_id)
        if not can_perform(actor.role, actor.user_id, task, TaskAction.READ):
            raise PermissionDeniedError("You do not have access to this task")
        return task, activity.task_history(self.db, task.task_id)

    def list_tasks(
        self,
        actor: User,
        filters: TaskFilters,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Task], int]:
        now = utc_now()
        stmt = select(Task)

        if actor.role != UserRole.ADMIN:
            stmt = stmt.where(member_scope_clause(actor.user_id))

        if filters.status:
            stmt = stmt.where(col(Task.status).in_(filters.status))
        if filters.priority:
            stmt = stmt.where(col(Task.priority).in_(filters.priority))
        if filters.assignee is not None:
            stmt = stmt.where(Task.assignee_id == filters.assignee)
        if filters.created_by is not None:
            stmt = stmt.where(Task.created_by_id == filters.created_by)
        if filters.tags:
            tags_text = sa.cast(Task.tags, sa.String)
            stmt = stmt.where(
                sa.or_(*[tags_text.contains(json_dumps(t), autoescape=True) for t in filters.tags])
            )
        if filters.search:
            term = filters.search.strip()
            # %, _ 는 리터럴로 취급
            stmt = stmt.where(
                sa.or_(
                    col(Task.title).icontains(term, autoescape=True),
                    col(Task.description).icontains(term, autoescape=True),
                )
            )
        if filters.due_from is not None:
            stmt = stmt.where(col(Task.due_date) >= filters.due_from)
        if filters.due_to is not None:
            stmt = stmt.where(col(Task.due_date) <= filters.due_to)
        if filters.overdue is True:
            stmt = stmt.where(overdue_clause(now))
        elif filters.overdue is False:
            stmt = stmt.where(sa.not_(overdue_clause(now)))

        total = self.db.exec(select(func.count()).select_from(stmt.subquery())).one()

        stmt = stmt.order_by(*self._ordering(filters.sort_by, filters.sort_order))
        stmt = stmt.offset((page - 1) * limit).limit(limit)
        return list(self.db.exec(stmt).all()), int(total)

    @staticmethod
    def _ordering(sort_by: str, sort_order: str):
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError([f"sort_by must be one of {', '.join(SORTABLE_FIELDS)}"])
        if sort_by == "priority":
            ranks = {p.value: rank for p, rank in PRIORITY_RANK.items()}
            key = sa.case(ranks, value=Task.priority, else_=-1)
        else:
            key = getattr(Task, sort_by)
        primary = key.asc() if sort_order == "asc" else key.desc()
        # 동률일 때 결과 순서 고정
        return [primary, col(Task.task_id).asc()]

    def overdue_tasks(self, actor: User) -> List[Task]:
        stmt = select(Task).where(overdue_clause(utc_now()))
        if actor.role != UserRole.ADMIN:
            stmt = stmt.where(member_scope_clause(actor.user_id))
        return list(self.db.exec(stmt.order_by(col(Task.due_date).asc())).all())

    def tasks_by_assignee(self, actor: User, assignee_id: UUID) -> List[Task]:
        if actor.role != UserRole.ADMIN and assignee_id != actor.user_id:
            raise PermissionDeniedError("You can only view your own assigned tasks")
        if self.db.get(User, assignee_id) is None:
            raise NotFoundError("User not found")
        stmt = (
            select(Task)
            .where(Task.assignee_id == assignee_id)
            .order_by(col(Task.created_at).desc())
        )
        return list(self.db.exec(stmt).all())

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create_task(self, actor: User, data: Dict[str, Any]) -> Task:
        now = utc_now()
        fields = normalize_task_fields(data)
        validate_task_fields(fields, now=now, creating=True).raise_for_errors()

        assignee_id = fields.get("assignee") or actor.user_id
        self._check_assignee(actor, assignee_id)

        status = fields.get("status") or TaskStatus.TODO
        task = Task(
            title=fields["title"],
            description=fields.get("description"),
            status=status,
            priority=fields.get("priority") or TaskPriority.MEDIUM,
            due_date=fields.get("due_date"),
            tags=fields.get("tags") or [],
            assignee_id=assignee_id,
            created_by_id=actor.user_id,
            created_at=now,
            updated_at=now,
            completed_at=now if status == TaskStatus.DONE else None,
        )
        try:
            self.db.add(task)
            activity.record_activity(
                self.db,
                task_id=task.task_id,
                user_id=actor.user_id,
                action=ActivityAction.CREATED,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(task)
        log.info("task created: %s by %s", task.task_id, actor.user_id)
        return task

    def update_task(self, actor: User, task_id: UUID, patch: Dict[str, Any]) -> Tuple[Task, TaskChanges]:
        task = self._get_or_404(task_id)
        if not can_perform(actor.role, actor.user_id, task, TaskAction.UPDATE):
            raise PermissionDeniedError("You can only update tasks assigned to you or created by you")

        now = utc_now()
        fields = normalize_task_fields(patch)
        validate_task_fields(
            fields, now=now, creating=False, current_due_date=task.due_date
        ).raise_for_errors()
        if "assignee" in fields and fields["assignee"] != task.assignee_id:
            self._check_assignee(actor, fields["assignee"])

        changes = activity.diff_task(task, fields)
        action = activity.action_for_changes(changes)
        try:
            self._apply_changes(task, changes, fields, now)
            self.db.add(task)
            activity.record_activity(
                self.db,
                task_id=task.task_id,
                user_id=actor.user_id,
                action=action,
                changes=changes,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(task)
        log.info(
            "task updated: %s by %s (%s: %s)",
            task.task_id, actor.user_id, action.value, ",".join(changes.changed_fields) or "-",
        )
        return task, changes

    def delete_task(self, actor: User, task_id: UUID) -> None:
        task = self._get_or_404(task_id)
        if not can_perform(actor.role, actor.user_id, task, TaskAction.DELETE):
            raise PermissionDeniedError("Only admins can delete tasks")
        try:
            self.db.delete(task)
            activity.record_activity(
                self.db,
                task_id=task.task_id,
                user_id=actor.user_id,
                action=ActivityAction.DELETED,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.info("task deleted: %s by %s", task_id, actor.user_id)

    def bulk_update(self, actor: User, task_ids: Sequence[UUID], updates: Dict[str, Any]) -> int:
        ids = list(dict.fromkeys(task_ids))
        tasks = list(self.db.exec(select(Task).where(col(Task.task_id).in_(ids))).all())
        found = {t.task_id for t in tasks}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise NotFoundError(f"Tasks not found: {', '.join(missing)}")

        now = utc_now()
        fields = normalize_task_fields(updates)
        # due_date 규칙은 태스크마다 기존 값 기준
        for task in tasks:
            validate_task_fields(
                fields, now=now, creating=False, current_due_date=task.due_date
            ).raise_for_errors()

        # 쓰기 전에 전부 권한 확인
        for task in tasks:
            if not can_perform(actor.role, actor.user_id, task, TaskAction.UPDATE):
                raise PermissionDeniedError(f"You cannot update task {task.task_id}")
        if "assignee" in fields:
            self._check_assignee(actor, fields["assignee"])

        try:
            for task in tasks:
                changes = activity.diff_task(task, fields)
                self._apply_changes(task, changes, fields, now)
                self.db.add(task)
                activity.record_activity(
                    self.db,
                    task_id=task.task_id,
                    user_id=actor.user_id,
                    action=activity.action_for_changes(changes),
                    changes=changes,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.info("bulk update: %d tasks by %s", len(tasks), actor.user_id)
        return len(tasks)

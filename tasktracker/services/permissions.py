# tasktracker/services/permissions.py
"""
권한 정책 (순수 함수, DB/요청 상태 없음)

Rules:
    1) admin may read/update/delete any task
    2) member may read/update a task only as its assignee or creator
    3) only admin may delete a task
    4) member may only assign tasks to themselves
    5) nobody may change their own role or delete their own account
"""
from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID

from tasktracker.models.task import Task
from tasktracker.models.user import UserRole


class TaskAction(str, Enum):
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class UserAction(str, Enum):
    READ = "read"
    UPDATE = "update"
    CHANGE_ROLE = "change_role"
    DELETE = "delete"


def _same(a: Optional[UUID], b: Optional[UUID]) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def is_self_action(actor_id: UUID, target_id: UUID) -> bool:
    return _same(actor_id, target_id)


def can_perform(actor_role: UserRole, actor_id: UUID, task: Task, action: TaskAction) -> bool:
    if actor_role == UserRole.ADMIN:
        return True
    if action == TaskAction.DELETE:
        return False
    return _same(task.assignee_id, actor_id) or _same(task.created_by_id, actor_id)


def can_assign(actor_role: UserRole, actor_id: UUID, assignee_id: UUID) -> bool:
    if actor_role == UserRole.ADMIN:
        return True
    return _same(actor_id, assignee_id)


def can_manage_user(actor_role: UserRole, actor_id: UUID, target_id: UUID, action: UserAction) -> bool:
    is_self = is_self_action(actor_id, target_id)
    if action in (UserAction.CHANGE_ROLE, UserAction.DELETE):
        return actor_role == UserRole.ADMIN and not is_self
    return actor_role == UserRole.ADMIN or is_self

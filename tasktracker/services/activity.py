from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlmodel import Session, col, select

from tasktracker.models.activity_log import ActivityAction, ActivityLog
from tasktracker.models.task import Task
from tasktracker.models.user import User
from tasktracker.schemas.activity import ActivityLogRead, TaskChanges
from tasktracker.schemas.user import UserSummary

log = logging.getLogger(__name__)

# patch key -> Task attribute
TRACKED_FIELDS: Dict[str, str] = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "due_date": "due_date",
    "tags": "tags",
    "assignee": "assignee_id",
}

# 단일 필드만 바뀐 경우 전용 action 사용
_SINGLE_FIELD_ACTIONS = {
    "status": ActivityAction.STATUS_CHANGED,
    "assignee": ActivityAction.ASSIGNED,
}


def diff_task(task: Task, patch: Dict[str, Any]) -> TaskChanges:
    """Compare a task against normalized patch values; unchanged keys are dropped."""
    raw: Dict[str, Dict[str, Any]] = {}
    for key, attr in TRACKED_FIELDS.items():
        if key not in patch:
            continue
        old = getattr(task, attr)
        new = patch[key]
        if key == "tags":
            old = list(old or [])
            new = list(new or [])
        if old != new:
            raw[key] = {"from": old, "to": new}
    return TaskChanges.model_validate(raw)


def action_for_changes(changes: TaskChanges) -> ActivityAction:
    fields = changes.changed_fields
    if len(fields) == 1 and fields[0] in _SINGLE_FIELD_ACTIONS:
        return _SINGLE_FIELD_ACTIONS[fields[0]]
    return ActivityAction.UPDATED


def record_activity(
    db: Session,
    *,
    task_id: UUID,
    user_id: UUID,
    action: ActivityAction,
    changes: Optional[TaskChanges] = None,
) -> ActivityLog:
    """
    Stage one activity entry on the caller's session.
    Commit belongs to the caller so the entry and the task write land together.
    """
    entry = ActivityLog(
        task_id=task_id,
        user_id=user_id,
        action=action,
        changes=changes.to_json() if changes is not None else None,
    )
    db.add(entry)
    log.debug("activity staged: task=%s user=%s action=%s", task_id, user_id, action.value)
    return entry


def task_history(db: Session, task_id: UUID, limit: int = 50) -> List[ActivityLog]:
    stmt = (
        select(ActivityLog)
        .where(ActivityLog.task_id == task_id)
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
    )
    return list(db.exec(stmt).all())


def user_activity(db: Session, user_id: UUID, limit: int = 50) -> List[ActivityLog]:
    stmt = (
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id)
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
    )
    return list(db.exec(stmt).all())


def load_users(db: Session, user_ids: Iterable[UUID]) -> Dict[UUID, User]:
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    rows = db.exec(select(User).where(col(User.user_id).in_(ids))).all()
    return {u.user_id: u for u in rows}


def describe_activity(db: Session, entries: Sequence[ActivityLog]) -> List[ActivityLogRead]:
    """Attach the acting user's summary and the task title to each entry.

    Deleted tasks and removed accounts leave those fields empty.
    """
    users = load_users(db, [e.user_id for e in entries])
    task_ids = {e.task_id for e in entries}
    titles: Dict[UUID, str] = {}
    if task_ids:
        rows = db.exec(select(Task.task_id, Task.title).where(col(Task.task_id).in_(task_ids))).all()
        titles = {task_id: title for task_id, title in rows}

    out: List[ActivityLogRead] = []
    for entry in entries:
        read = ActivityLogRead.model_validate(entry)
        actor = users.get(entry.user_id)
        read.user = UserSummary.model_validate(actor) if actor else None
        read.task_title = titles.get(entry.task_id)
        out.append(read)
    return out

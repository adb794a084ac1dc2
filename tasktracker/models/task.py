from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import SQLModel, Field

from tasktracker.core.time_utils import utc_now

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
MAX_TAGS = 10


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# 정렬용 가중치 (priority 컬럼은 문자열이라 DB 정렬이 알파벳순이 됨)
PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


def _enum_type(enum_cls, name: str) -> sa.Enum:
    return sa.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


def is_task_overdue(due_date: Optional[datetime], status: TaskStatus, now: Optional[datetime] = None) -> bool:
    if due_date is None:
        return False
    now = now or utc_now()
    return due_date < now and status != TaskStatus.DONE


class Task(SQLModel, table=True):
    __tablename__ = "task"

    task_id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None,
        sa_column=sa.Column(sa.Text, nullable=True),
    )
    status: TaskStatus = Field(
        default=TaskStatus.TODO,
        sa_column=sa.Column(_enum_type(TaskStatus, "taskstatus"), nullable=False, index=True),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(_enum_type(TaskPriority, "taskpriority"), nullable=False),
    )
    due_date: Optional[datetime] = Field(default=None, index=True, sa_type=sa.DateTime)
    tags: List[str] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    )
    assignee_id: UUID = Field(foreign_key="user.user_id", index=True)
    # creator is kept as a plain reference so historical tasks survive account removal
    created_by_id: UUID = Field(index=True)

    # naive UTC 저장: 컬럼 타입을 DateTime으로 고정
    created_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime)

    @property
    def is_overdue(self) -> bool:
        return is_task_overdue(self.due_date, self.status)

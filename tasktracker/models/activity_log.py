from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import SQLModel, Field

from tasktracker.core.time_utils import utc_now


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


class ActivityLog(SQLModel, table=True):
    """
    Append-only audit record of a task mutation.
    - task_id has no foreign key: entries outlive the task they describe
    - changes: {"<field>": {"from": old, "to": new}} or NULL
    """
    __tablename__ = "activitylog"

    __table_args__ = (
        sa.Index("ix_activitylog_task_timestamp", "task_id", "timestamp"),
        sa.Index("ix_activitylog_user_timestamp", "user_id", "timestamp"),
    )

    log_id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(nullable=False)
    user_id: UUID = Field(nullable=False)
    action: ActivityAction = Field(
        sa_column=sa.Column(
            sa.Enum(
                ActivityAction,
                name="activityaction",
                native_enum=False,
                length=20,
                values_callable=lambda e: [m.value for m in e],
            ),
            nullable=False,
        ),
    )
    changes: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=sa.Column(sa.JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql"), nullable=True),
    )
    timestamp: datetime = Field(default_factory=utc_now, index=True, sa_type=sa.DateTime)

"""init_schema

Revision ID: 4c2e9a71d0b3
Revises:
Create Date: 2026-10-16 10:02:11.514207

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql



revision = '4c2e9a71d0b3'
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_role", "user", ["role"])

    op.create_table(
        "task",
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("tags", _json(), nullable=False),
        sa.Column("assignee_id", sa.Uuid(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["assignee_id"], ["user.user_id"]),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index("ix_task_status", "task", ["status"])
    op.create_index("ix_task_due_date", "task", ["due_date"])
    op.create_index("ix_task_assignee_id", "task", ["assignee_id"])
    op.create_index("ix_task_created_by_id", "task", ["created_by_id"])

    op.create_table(
        "activitylog",
        sa.Column("log_id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("changes", _json(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("log_id"),
    )
    op.create_index("ix_activitylog_timestamp", "activitylog", ["timestamp"])
    op.create_index("ix_activitylog_task_timestamp", "activitylog", ["task_id", "timestamp"])
    op.create_index("ix_activitylog_user_timestamp", "activitylog", ["user_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("ix_activitylog_user_timestamp", table_name="activitylog")
    op.drop_index("ix_activitylog_task_timestamp", table_name="activitylog")
    op.drop_index("ix_activitylog_timestamp", table_name="activitylog")
    op.drop_table("activitylog")

    op.drop_index("ix_task_created_by_id", table_name="task")
    op.drop_index("ix_task_assignee_id", table_name="task")
    op.drop_index("ix_task_due_date", table_name="task")
    op.drop_index("ix_task_status", table_name="task")
    op.drop_table("task")

    op.drop_index("ix_user_role", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")

from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import SQLModel, Field

from tasktracker.core.time_utils import utc_now


class UserRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class User(SQLModel, table=True):
    __tablename__ = "user"

    user_id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(index=True, unique=True, max_length=254)
    password_hash: str
    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    role: UserRole = Field(
        default=UserRole.MEMBER,
        sa_column=sa.Column(
            sa.Enum(
                UserRole,
                name="userrole",
                native_enum=False,
                length=20,
                values_callable=lambda e: [m.value for m in e],
            ),
            nullable=False,
            index=True,
        ),
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime)
    last_login_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

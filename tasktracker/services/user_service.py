from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from tasktracker.core.config import Settings
from tasktracker.core.errors import (
    AuthError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from tasktracker.core.security import hash_password, verify_password
from tasktracker.core.time_utils import utc_now
from tasktracker.models.task import Task, TaskStatus
from tasktracker.models.user import User, UserRole
from tasktracker.schemas.user import TaskStats, UserRead
from tasktracker.services import activity
from tasktracker.services.permissions import UserAction, can_manage_user, is_self_action
from tasktracker.services.task_service import TaskService, overdue_clause
from tasktracker.services.validation import ValidationResult, validate_name, validate_password

log = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserService:
    def __init__(self, db: Session, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _get_or_404(self, user_id: UUID) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.exec(select(User).where(User.email == normalize_email(email))).first()

    def _ensure_email_free(self, email: str, exclude: Optional[UUID] = None) -> None:
        existing = self.get_by_email(email)
        if existing is not None and existing.user_id != exclude:
            raise ConflictError("email already exists")

    def _save(self, user: User) -> User:
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            # unique index race
            self.db.rollback()
            raise ConflictError("email already exists")
        self.db.refresh(user)
        return user

    def _apply_profile(self, user: User, fields: Dict[str, Any]) -> None:
        result = ValidationResult()
        if "first_name" in fields:
            validate_name("First name", fields["first_name"], result)
        if "last_name" in fields:
            validate_name("Last name", fields["last_name"], result)
        result.raise_for_errors()

        if fields.get("email") is not None:
            email = normalize_email(fields["email"])
            if email != user.email:
                self._ensure_email_free(email, exclude=user.user_id)
                user.email = email
        if "first_name" in fields:
            user.first_name = fields["first_name"].strip()
        if "last_name" in fields:
            user.last_name = fields["last_name"].strip()
        user.updated_at = utc_now()

    # ------------------------------------------------------------------
    # 계정
    # ------------------------------------------------------------------

    def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.MEMBER,
    ) -> User:
        result = validate_password(password)
        validate_name("First name", first_name, result)
        validate_name("Last name", last_name, result)
        result.raise_for_errors()

        self._ensure_email_free(email)
        user = User(
            email=normalize_email(email),
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
        )
        user = self._save(user)
        log.info("user registered: %s (%s)", user.user_id, user.role.value)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            log.warning("login failed for %s", normalize_email(email))
            raise AuthError("Invalid email or password")
        user.last_login_at = utc_now()
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_profile(self, user: User, fields: Dict[str, Any]) -> User:
        self._apply_profile(user, fields)
        return self._save(user)

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")
        validate_password(new_password).raise_for_errors()
        user.password_hash = hash_password(new_password, self.settings.bcrypt_rounds)
        user.updated_at = utc_now()
        self._save(user)

    def ensure_admin(self, email: str, password: str) -> User:
        """Upsert the bootstrap admin account."""
        existing = self.get_by_email(email)
        if existing is not None:
            if existing.role != UserRole.ADMIN:
                existing.role = UserRole.ADMIN
                existing.updated_at = utc_now()
                self._save(existing)
            return existing
        return self.register(
            email=email,
            password=password,
            first_name="Admin",
            last_name="User",
            role=UserRole.ADMIN,
        )

    # ------------------------------------------------------------------
    # 사용자 관리
    # ------------------------------------------------------------------

    def list_users(
        self,
        *,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if search:
            term = search.strip()
            stmt = stmt.where(
                sa.or_(
                    col(User.email).icontains(term, autoescape=True),
                    col(User.first_name).icontains(term, autoescape=True),
                    col(User.last_name).icontains(term, autoescape=True),
                )
            )
        total = self.db.exec(select(func.count()).select_from(stmt.subquery())).one()
        stmt = (
            stmt.order_by(col(User.created_at).desc(), col(User.user_id).asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.exec(stmt).all()), int(total)

    def get_user(self, actor: User, user_id: UUID) -> User:
        if not can_manage_user(actor.role, actor.user_id, user_id, UserAction.READ):
            raise PermissionDeniedError("You can only view your own profile")
        return self._get_or_404(user_id)

    def task_stats(self, user_id: UUID) -> TaskStats:
        rows = self.db.exec(
            select(Task.status, func.count())
            .where(Task.assignee_id == user_id)
            .group_by(Task.status)
        ).all()
        by_status = {status: int(count) for status, count in rows}
        overdue = self.db.exec(
            select(func.count())
            .select_from(Task)
            .where(Task.assignee_id == user_id, overdue_clause(utc_now()))
        ).one()
        return TaskStats(
            total=sum(by_status.values()),
            todo=by_status.get(TaskStatus.TODO, 0),
            in_progress=by_status.get(TaskStatus.IN_PROGRESS, 0),
            done=by_status.get(TaskStatus.DONE, 0),
            overdue=int(overdue),
        )

    def get_user_with_stats(self, actor: User, user_id: UUID) -> Tuple[User, TaskStats]:
        user = self.get_user(actor, user_id)
        return user, self.task_stats(user.user_id)

    def update_user(self, actor: User, user_id: UUID, fields: Dict[str, Any]) -> User:
        if not can_manage_user(actor.role, actor.user_id, user_id, UserAction.UPDATE):
            raise PermissionDeniedError("You can only update your own profile")
        user = self._get_or_404(user_id)
        self._apply_profile(user, fields)
        return self._save(user)

    def change_role(self, actor: User, user_id: UUID, role: UserRole) -> User:
        if is_self_action(actor.user_id, user_id):
            raise BadRequestError("You cannot change your own role")
        if not can_manage_user(actor.role, actor.user_id, user_id, UserAction.CHANGE_ROLE):
            raise PermissionDeniedError("Admin access required")
        user = self._get_or_404(user_id)
        previous = user.role
        user.role = role
        user.updated_at = utc_now()
        user = self._save(user)
        log.info("role changed: %s %s -> %s by %s", user.user_id, previous.value, role.value, actor.user_id)
        return user

    def delete_user(self, actor: User, user_id: UUID) -> None:
        if is_self_action(actor.user_id, user_id):
            raise BadRequestError("You cannot delete your own account")
        if not can_manage_user(actor.role, actor.user_id, user_id, UserAction.DELETE):
            raise PermissionDeniedError("Admin access required")
        user = self._get_or_404(user_id)

        assigned = self.db.exec(
            select(func.count()).select_from(Task).where(Task.assignee_id == user_id)
        ).one()
        if assigned:
            raise BadRequestError(
                f"Cannot delete user with {assigned} assigned task(s). "
                "Reassign or delete those tasks first."
            )
        self.db.delete(user)
        self.db.commit()
        log.info("user deleted: %s by %s", user_id, actor.user_id)

    def dashboard(self, actor: User, user_id: Optional[UUID] = None) -> Dict[str, Any]:
        target_id = user_id or actor.user_id
        user = self.get_user(actor, target_id)
        now = utc_now()

        recent = self.db.exec(
            select(Task)
            .where(Task.assignee_id == target_id)
            .order_by(col(Task.updated_at).desc())
            .limit(5)
        ).all()
        upcoming = self.db.exec(
            select(Task)
            .where(
                Task.assignee_id == target_id,
                col(Task.due_date).is_not(None),
                col(Task.due_date) >= now,
                col(Task.due_date) <= now + timedelta(days=7),
                col(Task.status) != TaskStatus.DONE,
            )
            .order_by(col(Task.due_date).asc())
            .limit(5)
        ).all()
        tasks = TaskService(self.db)
        return {
            "user": UserRead.model_validate(user),
            "task_stats": self.task_stats(target_id),
            "recent_tasks": tasks.serialize(recent),
            "upcoming_tasks": tasks.serialize(upcoming),
            "recent_activity": activity.describe_activity(
                self.db, activity.user_activity(self.db, target_id, limit=10)
            ),
        }

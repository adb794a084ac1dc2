from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from tasktracker.core.errors import (
    AuthError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tasktracker.models.activity_log import ActivityLog
from tasktracker.models.task import TaskStatus
from tasktracker.models.user import User, UserRole
from tasktracker.services.task_service import TaskService
from tasktracker.services.user_service import UserService

PASSWORD = "secret123"


@pytest.fixture
def users(db, settings):
    return UserService(db, settings)


def test_register_lowercases_email_and_hashes_password(users):
    user = users.register(email="  Jane@Example.COM ", password=PASSWORD, first_name="Jane", last_name="Doe")

    assert user.email == "jane@example.com"
    assert user.role == UserRole.MEMBER
    assert user.password_hash != PASSWORD


def test_register_rejects_duplicate_email(users, member):
    with pytest.raises(ConflictError, match="email already exists"):
        users.register(email="MEMBER@example.com", password=PASSWORD, first_name="A", last_name="B")


def test_register_validates_password_and_names(users):
    with pytest.raises(ValidationError) as exc_info:
        users.register(email="x@example.com", password="short", first_name="", last_name="B")

    assert "First name is required" in exc_info.value.errors
    assert "Password must be at least 6 characters long" in exc_info.value.errors


def test_authenticate_sets_last_login(users, member):
    user = users.authenticate("Member@Example.com", PASSWORD)

    assert user.user_id == member.user_id
    assert user.last_login_at is not None


def test_authenticate_rejects_bad_password(users, member):
    with pytest.raises(AuthError, match="Invalid email or password"):
        users.authenticate(member.email, "wrong-password1")


def test_change_password_requires_current_password(users, member):
    with pytest.raises(BadRequestError, match="Current password is incorrect"):
        users.change_password(member, "nope12345", "newpass123")

    users.change_password(member, PASSWORD, "newpass123")

    assert users.authenticate(member.email, "newpass123").user_id == member.user_id


def test_ensure_admin_creates_then_promotes(users, member):
    created = users.ensure_admin("boss@example.com", PASSWORD)
    promoted = users.ensure_admin(member.email, "ignored123")

    assert created.role == UserRole.ADMIN
    assert promoted.user_id == member.user_id
    assert promoted.role == UserRole.ADMIN


def test_admin_cannot_change_own_role(users, admin):
    with pytest.raises(BadRequestError, match="You cannot change your own role"):
        users.change_role(admin, admin.user_id, UserRole.MEMBER)


def test_admin_changes_member_role(users, admin, member):
    updated = users.change_role(admin, member.user_id, UserRole.ADMIN)

    assert updated.role == UserRole.ADMIN


def test_admin_cannot_delete_self(users, admin):
    with pytest.raises(BadRequestError, match="You cannot delete your own account"):
        users.delete_user(admin, admin.user_id)


def test_member_cannot_delete_others(users, member, other_member):
    with pytest.raises(PermissionDeniedError):
        users.delete_user(member, other_member.user_id)


def test_delete_blocked_while_user_has_assigned_tasks(db, users, admin, member):
    TaskService(db).create_task(admin, {"title": "t", "assignee": member.user_id})

    with pytest.raises(BadRequestError, match="1 assigned task"):
        users.delete_user(admin, member.user_id)

    assert db.get(User, member.user_id) is not None


def test_delete_user_without_tasks(db, users, admin, member):
    member_id = member.user_id

    users.delete_user(admin, member_id)

    assert db.get(User, member_id) is None


def test_delete_unknown_user(users, admin):
    with pytest.raises(NotFoundError):
        users.delete_user(admin, uuid4())


def test_member_cannot_read_other_profile(users, member, other_member):
    with pytest.raises(PermissionDeniedError):
        users.get_user(member, other_member.user_id)


def test_update_user_rejects_taken_email(users, member, other_member):
    with pytest.raises(ConflictError):
        users.update_user(member, member.user_id, {"email": other_member.email})


def test_list_users_filters_and_paginates(users, admin, member, other_member):
    members, total = users.list_users(role=UserRole.MEMBER, page=1, limit=1)
    found, found_total = users.list_users(search="other")

    assert total == 2
    assert len(members) == 1
    assert found_total == 1
    assert found[0].user_id == other_member.user_id


def test_task_stats_and_dashboard(db, users, admin, member):
    tasks = TaskService(db)
    tasks.create_task(member, {"title": "a"})
    done = tasks.create_task(member, {"title": "b"})
    tasks.update_task(member, done.task_id, {"status": TaskStatus.DONE})

    stats = users.task_stats(member.user_id)
    dashboard = users.dashboard(admin, member.user_id)

    assert (stats.total, stats.todo, stats.done, stats.in_progress) == (2, 1, 1, 0)
    assert dashboard["user"].user_id == member.user_id
    assert len(dashboard["recent_tasks"]) == 2
    assert len(dashboard["recent_activity"]) == 3
    logs = db.exec(select(ActivityLog).where(ActivityLog.user_id == member.user_id)).all()
    assert len(logs) == 3


def test_get_user_with_stats_counts_overdue(db, users, admin, member):
    task = TaskService(db).create_task(admin, {"title": "t", "assignee": member.user_id})
    task.due_date = task.created_at - timedelta(days=1)
    db.add(task)
    db.commit()

    user, stats = users.get_user_with_stats(member, member.user_id)

    assert user.user_id == member.user_id
    assert (stats.total, stats.overdue) == (1, 1)
